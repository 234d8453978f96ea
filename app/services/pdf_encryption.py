"""
Password protection for rendered payslips.

The composer only sees ``PdfEncryptor.encrypt``. PyPDF2 does the work
in-process; the qpdf backend shells out and is kept for deployments that
already standardise on it.
"""
import io
import logging
import os
import shutil
import subprocess
import tempfile
from typing import Optional, Protocol

from PyPDF2 import PdfReader, PdfWriter

from app.core.config import settings
from app.core.exceptions import EncryptionFailure

logger = logging.getLogger(__name__)


class PdfEncryptor(Protocol):
    def encrypt(self, document: bytes, user_password: str, owner_password: str) -> bytes:
        ...


class PyPDF2Encryptor:
    """128-bit standard security handler, readable by every PDF viewer."""

    def encrypt(self, document: bytes, user_password: str, owner_password: str) -> bytes:
        try:
            reader = PdfReader(io.BytesIO(document))
            writer = PdfWriter()
            for page in reader.pages:
                writer.add_page(page)
            writer.encrypt(user_password=user_password, owner_password=owner_password, use_128bit=True)
            out = io.BytesIO()
            writer.write(out)
            return out.getvalue()
        except Exception as e:
            logger.error(f"PyPDF2 encryption failed: {e}")
            raise EncryptionFailure(f"PDF encryption failed: {e}") from e


class QpdfEncryptor:
    def __init__(self, binary: Optional[str] = None, timeout: Optional[float] = None):
        self.binary = binary or settings.payroll.qpdf_binary
        self.timeout = timeout if timeout is not None else settings.payroll.qpdf_timeout_seconds

    def encrypt(self, document: bytes, user_password: str, owner_password: str) -> bytes:
        if shutil.which(self.binary) is None:
            raise EncryptionFailure(f"qpdf binary '{self.binary}' not found")

        # Unique names per call; the directory and everything in it goes on every exit path
        with tempfile.TemporaryDirectory(prefix="payslip-") as workdir:
            fd, source = tempfile.mkstemp(suffix=".pdf", dir=workdir)
            with os.fdopen(fd, "wb") as f:
                f.write(document)
            target = os.path.join(workdir, "encrypted.pdf")

            try:
                subprocess.run(
                    [self.binary, "--encrypt", user_password, owner_password, "256", "--", source, target],
                    check=True,
                    capture_output=True,
                    timeout=self.timeout,
                )
            except subprocess.TimeoutExpired as e:
                logger.error(f"qpdf timed out after {self.timeout}s")
                raise EncryptionFailure("qpdf timed out") from e
            except subprocess.CalledProcessError as e:
                stderr = (e.stderr or b"").decode(errors="replace").strip()
                logger.error(f"qpdf exited with {e.returncode}: {stderr}")
                raise EncryptionFailure(f"qpdf exited with {e.returncode}") from e
            except OSError as e:
                raise EncryptionFailure(f"qpdf could not be started: {e}") from e

            with open(target, "rb") as f:
                return f.read()


def get_encryptor(name: Optional[str] = None) -> PdfEncryptor:
    name = (name or settings.payroll.pdf_encryptor).lower()
    if name == "qpdf":
        return QpdfEncryptor()
    return PyPDF2Encryptor()
