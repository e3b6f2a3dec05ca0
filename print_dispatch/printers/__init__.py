from .directory import PrinterDirectory, PrinterInfo

__all__ = ["PrinterDirectory", "PrinterInfo"]
