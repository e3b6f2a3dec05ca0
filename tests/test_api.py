"""Tests for API endpoints."""

import pytest
from fastapi.testclient import TestClient

from conftest import make_pdf_bytes
from print_dispatch.api.dependencies import ServiceInfo
from print_dispatch.api.server import create_app
from print_dispatch.config_store import ConfigStore
from print_dispatch.engine import create_engine
from print_dispatch.printers import PrinterDirectory


class FakeRenderer:
    """Writes a fixed PDF instead of launching a browser."""

    def __init__(self, temp_dir):
        self.temp_dir = temp_dir
        self.rendered = []

    async def render(self, html, paper_format="A4", pdf_options=None, **launch_options):
        self.rendered.append(html)
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        path = self.temp_dir / f"rendered_{len(self.rendered)}.pdf"
        path.write_bytes(make_pdf_bytes())
        return path

    def resolve_browser_executable(self):
        return None


class FakeCupsConnection:
    def getPrinters(self):
        return {
            "Office": {"printer-state": 3, "printer-info": "Office printer"},
            "Lab": {"printer-state": 4},
        }

    def getDefault(self):
        return "Office"


@pytest.fixture
def temp_dir(tmp_path):
    return tmp_path / "tmp"


@pytest.fixture
def renderer(temp_dir):
    return FakeRenderer(temp_dir)


def build_client(tmp_path, config_store, runner, renderer, platform="linux"):
    engine = create_engine(
        config_store,
        temp_dir=tmp_path / "tmp",
        resources_dir=tmp_path / "static",
        platform=platform,
        runner=runner,
        renderer=renderer,
        directory=PrinterDirectory(runner, platform, connection_factory=FakeCupsConnection)
    )
    info = ServiceInfo(platform=platform, resources_dir=tmp_path / "static", log_file=tmp_path / "app.log")
    return TestClient(create_app(engine, config_store, info, debug=True))


@pytest.fixture
def client(tmp_path, config_store, runner, renderer):
    return build_client(tmp_path, config_store, runner, renderer)


class TestServiceEndpoints:
    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["platform"] == "linux"

    def test_config_snapshot(self, client, config_store, tmp_path):
        response = client.get("/config")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["configPath"] == str(config_store.path)
        assert data["configExists"] is False
        assert data["platform"] == "linux"
        assert data["resolved"]["demo"]["pdf"] == str(tmp_path / "static" / "demo" / "demo.pdf")
        assert data["resolved"]["logFile"] == str(tmp_path / "app.log")
        assert data["resolved"]["browser"] is None
        assert set(data["resolved"]["office"]) == {"word", "excel", "ppt"}
        assert data["config"] == {}

    def test_set_config_then_get_reports_configured_path(self, tmp_path, config_store, runner, renderer):
        """A configured but missing executable is still what GET /config reports."""
        client = build_client(tmp_path, config_store, runner, renderer, platform="win32")

        response = client.post("/setConfig", json={"key": "office.word.win32", "value": "C:/fake/WINWORD.EXE"})
        assert response.status_code == 200
        assert response.json()["success"] is True

        data = client.get("/config").json()["data"]
        assert data["resolved"]["office"]["word"] == "C:/fake/WINWORD.EXE"
        assert data["config"] == {"office": {"word": {"win32": "C:/fake/WINWORD.EXE"}}}
        assert data["configExists"] is True

    @pytest.mark.parametrize("body", [
        {},
        {"key": "office.word"},
        {"key": "   ", "value": "x"},
        {"key": "office.word", "value": "   "},
    ])
    def test_set_config_missing_fields(self, client, body):
        response = client.post("/setConfig", json=body)
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_set_config_invalid_key_path(self, client):
        response = client.post("/setConfig", json={"key": "office..word", "value": "x"})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid keyPath: 'office..word'"}

    def test_set_config_null_value(self, client):
        response = client.post("/setConfig", json={"key": "office.word", "value": None})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "value is required"}

    def test_set_config_write_failure(self, tmp_path, runner, renderer):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        client = build_client(tmp_path, ConfigStore(blocker / "config.json"), runner, renderer)

        response = client.post("/setConfig", json={"key": "print.retries", "value": 2})

        assert response.status_code == 500
        assert response.json()["success"] is False
        assert response.json()["error"].startswith("Failed to write config file")


class TestPrinterEndpoints:
    def test_list_printers(self, client):
        response = client.get("/printers")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert {p["name"] for p in body["data"]} == {"Office", "Lab"}

    def test_default_printer(self, client):
        data = client.get("/printers/default").json()["data"]
        assert data["name"] == "Office"
        assert data["isDefault"] is True

    def test_printer_status(self, client, runner):
        runner.queue(0, "printer Office is idle.\n")
        response = client.get("/printers/Office/status")
        assert response.json()["data"] == {"name": "Office", "status": "printer Office is idle."}

    def test_status_failure_is_formatted(self, client, runner):
        runner.queue(1, "", "lpstat: Invalid destination name")
        response = client.get("/printers/Nope/status")
        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "lpstat: Invalid destination name"}

    def test_job_status_and_cancel(self, client, runner):
        runner.queue(0, "Office-3  alice  1024  Mon\n")
        running = client.get("/printers/Office/jobs/3").json()["data"]
        assert running["completed"] is False

        runner.queue(0, "")
        done = client.get("/printers/Office/jobs/3").json()["data"]
        assert done["completed"] is True

        response = client.delete("/printers/Office/jobs/3")
        assert response.json()["data"]["cancelled"] is True
        assert runner.calls[-1] == ["cancel", "Office-3"]

    def test_list_printers_unsupported_platform(self, tmp_path, config_store, runner, renderer):
        client = build_client(tmp_path, config_store, runner, renderer, platform="sunos5")
        response = client.get("/printers")
        assert response.status_code == 500
        assert response.json()["success"] is False


class TestPrintEndpoints:
    def test_print_pdf_from_url(self, client, runner, file_server, temp_dir):
        runner.queue(0, "request id is Office-41 (1 file(s))")

        response = client.post("/print/pdf", json={"filePath": f"{file_server}/a.pdf"})

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["jobId"] == "41"
        downloaded = list(temp_dir.iterdir())
        assert len(downloaded) == 1
        assert runner.calls[0] == ["lp", str(downloaded[0])]

    def test_print_pdf_unreachable_host(self, client, runner):
        response = client.post("/print/pdf", json={"filePath": "http://127.0.0.1:1/a.pdf"})

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["error"].startswith("Failed to download file")
        assert runner.calls == []

    def test_print_pdf_with_options(self, client, runner, pdf_file):
        response = client.post("/print/pdf", json={
            "filePath": str(pdf_file),
            "options": {"printer": "Lab", "copies": 2, "duplex": "long-edge"},
        })

        assert response.status_code == 200
        assert runner.calls[0] == [
            "lp", "-d", "Lab", "-n", "2", "-o", "sides=two-sided-long-edge", str(pdf_file.resolve())
        ]

    def test_invalid_options(self, client, pdf_file):
        response = client.post("/print/pdf", json={"filePath": str(pdf_file), "options": {"copies": -1}})
        assert response.status_code == 400
        assert response.json()["success"] is False

    @pytest.mark.parametrize("endpoint", [
        "/print/pdf", "/print/word", "/print/excel", "/print/ppt", "/print/office",
    ])
    def test_missing_file_path(self, client, endpoint):
        response = client.post(endpoint, json={})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "filePath is required"}

    def test_blank_file_path(self, client):
        response = client.post("/print/pdf", json={"filePath": "   "})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "filePath is required"}

    def test_non_json_body(self, client):
        response = client.post("/print/pdf", content=b"not json", headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Request body is not valid JSON"}

    def test_body_must_be_object(self, client):
        response = client.post("/print/pdf", json=["a.pdf"])
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Request body must be a JSON object"}

    def test_options_must_be_object(self, client, pdf_file):
        response = client.post("/print/pdf", json={"filePath": str(pdf_file), "options": "duplex"})
        assert response.status_code == 400
        assert response.json()["error"].startswith("options: ")

    def test_print_pdf_stream(self, client, runner, temp_dir):
        response = client.post(
            "/print/pdf-stream",
            files={"file": ("invoice.pdf", make_pdf_bytes(), "application/pdf")}
        )

        assert response.status_code == 200
        assert (temp_dir / "invoice.pdf").exists()
        assert runner.calls[0] == ["lp", str(temp_dir / "invoice.pdf")]

    def test_print_pdf_stream_with_options(self, client, runner, temp_dir):
        response = client.post(
            "/print/pdf-stream",
            files={"file": ("invoice.pdf", make_pdf_bytes(), "application/pdf")},
            data={"options": '{"printer": "Lab"}'}
        )

        assert response.status_code == 200
        assert runner.calls[0][:3] == ["lp", "-d", "Lab"]

    def test_print_pdf_stream_rejects_non_pdf(self, client, runner):
        response = client.post(
            "/print/pdf-stream",
            files={"file": ("notes.txt", b"hello", "text/plain")}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_FORMAT"
        assert runner.calls == []

    def test_print_pdf_stream_requires_file(self, client):
        response = client.post("/print/pdf-stream", data={"options": "{}"})
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "file is required"}

    def test_batch(self, client, runner, pdf_file, tmp_path):
        runner.queue(0, "request id is Office-1 (1 file(s))")
        missing = tmp_path / "missing.pdf"

        response = client.post("/print/pdf/batch", json={"filePaths": [str(pdf_file), str(missing)]})

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert [r["success"] for r in body["data"]] == [True, False]
        assert body["error"] == "1 of 2 file(s) failed to print"
        # Default printer looked up once and used for every item
        assert runner.calls[0][:3] == ["lp", "-d", "Office"]

    def test_batch_requires_list(self, client):
        assert client.post("/print/pdf/batch", json={"filePaths": []}).status_code == 400
        assert client.post("/print/pdf/batch", json={"filePaths": "a.pdf"}).status_code == 400
        assert client.post("/print/pdf/batch", json={"filePaths": ["a.pdf", " "]}).status_code == 400

    def test_print_html(self, client, runner, renderer):
        response = client.post("/print/html", json={"htmlContent": "<h1>Receipt</h1>"})

        assert response.status_code == 200
        assert renderer.rendered == ["<h1>Receipt</h1>"]
        assert runner.calls[0][0] == "lp"

    def test_print_html_requires_content(self, client):
        response = client.post("/print/html", json={"htmlContent": ""})
        assert response.status_code == 400

    def test_print_jsx(self, client, renderer):
        response = client.post("/print/jsx", json={
            "jsx": "<h1>{data.title}</h1>",
            "initialData": {"title": "Packing slip"},
        })

        assert response.status_code == 200
        assert "<h1>{data.title}</h1>" in renderer.rendered[0]
        assert '"title": "Packing slip"' in renderer.rendered[0]

    def test_print_jsx_requires_markup(self, client):
        assert client.post("/print/jsx", json={"initialData": {}}).status_code == 400

    def test_word_not_found(self, tmp_path, config_store, runner, renderer):
        doc = tmp_path / "letter.docx"
        doc.write_bytes(b"PK")
        client = build_client(tmp_path, config_store, runner, renderer, platform="sunos5")

        response = client.post("/print/word", json={"filePath": str(doc)})

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "Word executable not found. Configure office.word in config.json",
        }

    def test_office_script_requires_windows(self, client, tmp_path):
        doc = tmp_path / "letter.docx"
        doc.write_bytes(b"PK")

        response = client.post("/print/office", json={"filePath": str(doc)})

        assert response.status_code == 500
        assert "requires Windows" in response.json()["error"]
