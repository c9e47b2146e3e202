import io
import logging
from typing import Optional

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from errors import ContentExtractionError

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = {
    "txt", "csv", "md", "json", "js", "ts", "py", "java", "c", "cpp", "cs", "html", "css", "xml",
    "yml", "yaml", "log", "ini", "cfg", "conf", "toml", "jsonl", "ipynb", "tex", "rst", "adoc",
    "asciidoc", "bat", "sh", "php", "rb", "go", "rs", "swift", "kt", "dart", "sql", "pl", "lua",
    "asm", "s", "f90", "f", "r", "sas", "jsp", "asp", "aspx", "vue", "jsx", "tsx", "lock", "env",
    "ps1", "vbs", "wsf",
}

SPREADSHEET_EXTENSIONS = {
    "xls", "xlsx", "xlsm", "xlsb", "ods", "ots", "sxc", "stc", "uos", "uof", "csv", "tsv",
}


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def extract_pdf_text(data: bytes) -> str:
    """Extract text from a PDF, one line per page."""
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, ValueError, OSError) as e:
        raise ContentExtractionError(f"Failed to extract text from PDF: {e}") from e
    return "\n".join(text.strip() for text in pages if text.strip())


def describe_upload(filename: Optional[str], content_type: Optional[str], data: bytes) -> str:
    """
    Turn an uploaded file into text for the generator.

    PDFs are extracted, text and spreadsheet formats are decoded as UTF-8,
    anything else becomes a short description built from the file's name
    and type.
    """
    filename = filename or "uploaded file"
    content_type = content_type or ""
    ext = _extension(filename)

    if content_type == "application/pdf" or ext == "pdf":
        text = extract_pdf_text(data)
        logger.info("Extracted %d characters from PDF %s", len(text), filename)
        return f"The following is the extracted text from the PDF file '{filename}':\n\n{text}"

    if content_type.startswith("text/") or ext in TEXT_EXTENSIONS:
        text = data.decode("utf-8", errors="replace")
        return f"The following is the content of the file '{filename}':\n\n{text}"

    if ext in SPREADSHEET_EXTENSIONS:
        text = data.decode("utf-8", errors="replace")
        return f"The following is the content of the spreadsheet file '{filename}':\n\n{text}"

    if content_type.startswith("image/"):
        return (f"The user uploaded an image file named {filename} ({content_type}). "
                "Please infer tasks based on this context.")

    return (f"The user uploaded a file named {filename} of type {content_type or 'unknown'}. "
            "Please infer tasks based on this context.")


def describe_sheet(sheet: str) -> str:
    return f"The following Google Sheet describes the project: {sheet.strip()}"
