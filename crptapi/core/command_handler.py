"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py) and delegates the work to
the registry client, the local file system and the retry policy. This is the
layer where typed client errors are turned into user-facing messages.
"""

import logging
from typing import Any, Mapping, Optional

from crptapi.core.api_client import CrptApi
from crptapi.domain.errors import CrptApiError, RateLimitedError, TransportError
from crptapi.domain.interfaces.user_interface import UserInterface
from crptapi.infrastructure.filesystem.local_fs import LocalFileSystem
from crptapi.infrastructure.resilience.api_retry import MaxRetryError, SubmissionRetryService

logger = logging.getLogger(__name__)


class CommandHandler:
    """Handles incoming commands and delegates to the client."""

    def __init__(
        self,
        client: CrptApi,
        file_system: LocalFileSystem,
        ui: UserInterface,
        retry_service: Optional[SubmissionRetryService] = None,
    ):
        self.client = client
        self.file_system = file_system
        self.ui = ui
        self.retry_service = retry_service

    def handle_submit(
        self,
        document_path: str,
        signature: Optional[str] = None,
        signature_path: Optional[str] = None,
    ) -> bool:
        """Handles the 'submit' command. Returns True on success."""
        logger.info(f"Handling 'submit' command for document file: {document_path}")
        try:
            document = self.file_system.read_document(document_path)
            if signature is None:
                if signature_path is None:
                    self.ui.display_error("A signature is required (--signature or --signature-file).")
                    return False
                signature = self.file_system.read_signature(signature_path)

            if self.retry_service is not None:
                response = self.retry_service.execute_with_retry(
                    self.client.submit, document, signature, endpoint_name="create_document"
                )
            else:
                response = self.client.submit(document, signature)
        except OSError as e:
            self.ui.display_error(str(e))
            return False
        except MaxRetryError as e:
            logger.error(f"Submission failed after retries: {e}")
            self.ui.display_error(f"Submission failed after {e.attempts} attempts: {e.original_exception}")
            return False
        except RateLimitedError as e:
            self.ui.display_warning(f"Request limit reached, try again later: {e}")
            return False
        except TransportError as e:
            details = f" (HTTP {e.status_code})" if e.status_code else ""
            self.ui.display_error(f"Registry request failed{details}: {e}")
            if e.response_body:
                self.ui.display_output(e.response_body, title="Registry error response")
            return False
        except CrptApiError as e:
            self.ui.display_error(f"Submission failed at {e.stage} stage: {e}")
            return False

        self.ui.display_info(f"Document {document.document_id} submitted.")
        self.ui.display_output(response)
        return True

    def handle_encode(self, document_path: str) -> bool:
        """Handles the 'encode' command: prints the base64 product document."""
        logger.info(f"Handling 'encode' command for document file: {document_path}")
        try:
            document = self.file_system.read_document(document_path)
            encoded = self.client.encoder.encode(document)
        except OSError as e:
            self.ui.display_error(str(e))
            return False
        except CrptApiError as e:
            self.ui.display_error(f"Encoding failed: {e}")
            return False

        self.ui.display_output(encoded, title=f"product_document ({document.document_id})")
        return True

    def handle_show_config(self, settings: Mapping[str, Any]) -> bool:
        """Handles the 'show-config' command."""
        self.ui.display_table("Effective configuration", settings)
        return True
