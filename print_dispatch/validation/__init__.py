from .document import DocumentValidationResult, validate_pdf

__all__ = ["DocumentValidationResult", "validate_pdf"]
