"""
Request bodies for the job API.
"""

from typing import Annotated, Any, Optional

from pydantic import BaseModel, Field, StringConstraints, field_validator

RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class FileJobRequest(BaseModel):
    filePath: RequiredText
    options: Optional[dict[str, Any]] = None


class BatchJobRequest(BaseModel):
    filePaths: list[RequiredText] = Field(min_length=1)
    options: Optional[dict[str, Any]] = None


class HtmlJobRequest(BaseModel):
    htmlContent: RequiredText
    options: Optional[dict[str, Any]] = None


class FragmentJobRequest(BaseModel):
    jsx: RequiredText
    initialData: Any = None
    options: Optional[dict[str, Any]] = None


class SetConfigRequest(BaseModel):
    key: RequiredText
    value: Any

    @field_validator("value")
    @classmethod
    def value_present(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
        if value is None or value == "":
            raise ValueError("value is required")
        return value
