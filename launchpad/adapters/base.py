from abc import ABC, abstractmethod
from typing import Any

import requests
from rich.console import Console

from launchpad.core.audit_logger import get_audit_logger
from launchpad.core.exceptions import ChannelError, ChannelFailureClass, ChannelNotConfiguredError
from launchpad.core.schemas import Channel, ChannelCampaign, ChannelLaunchRequest, ChannelMetrics, CampaignUpdate

DEFAULT_REQUEST_TIMEOUT = 30

# HTTP status -> how the orchestrator's caller should treat the failure
_STATUS_FAILURE_CLASSES = {
    400: ChannelFailureClass.VALIDATION_REJECTED,
    401: ChannelFailureClass.NOT_CONFIGURED,
    403: ChannelFailureClass.NOT_CONFIGURED,
    404: ChannelFailureClass.VALIDATION_REJECTED,
    408: ChannelFailureClass.TRANSIENT,
    409: ChannelFailureClass.VALIDATION_REJECTED,
    422: ChannelFailureClass.VALIDATION_REJECTED,
    429: ChannelFailureClass.TRANSIENT,
}


def classify_status(status_code: int) -> ChannelFailureClass:
    if status_code >= 500:
        return ChannelFailureClass.TRANSIENT
    return _STATUS_FAILURE_CLASSES.get(status_code, ChannelFailureClass.UNKNOWN)


class PlatformAdapter(ABC):
    """Abstract base class for advertising platform adapters.

    One instance per channel is built at process start and shared by every
    launch. An adapter with missing credentials can still be constructed; it
    reports ``is_configured() == False`` and raises ChannelNotConfiguredError
    from any remote operation.
    """

    adapter_name: str = "base"
    channel: Channel

    def __init__(self, config: Any, dry_run: bool = False, timeout: int = DEFAULT_REQUEST_TIMEOUT):
        self.config = config
        self.dry_run = dry_run
        self.timeout = timeout
        self.console = Console()
        self.audit_logger = get_audit_logger(self.adapter_name)

    def log(self, message: str, dry_run_prefix: bool = True):
        """Log a message, with optional dry-run prefix."""
        if self.dry_run and dry_run_prefix:
            self.console.print(f"[dim](dry-run)[/dim] {message}")
        else:
            self.console.print(message)

    @property
    def display_name(self) -> str:
        return self.channel.display_name

    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the credentials needed to reach the platform are present."""
        pass

    def ensure_configured(self):
        if not self.is_configured() and not self.dry_run:
            raise ChannelNotConfiguredError(self.channel.value, f"{self.display_name} API not configured")

    @abstractmethod
    def create_campaign(self, request: ChannelLaunchRequest) -> ChannelCampaign:
        """Create a new, paused campaign on the platform.

        Always creates; never looks up or modifies an existing campaign.

        Raises:
            ChannelError: the platform refused the request or could not be reached
        """
        pass

    @abstractmethod
    def pause(self, external_id: str) -> None:
        """Pause a campaign previously created on this platform."""
        pass

    @abstractmethod
    def update(self, external_id: str, fields: CampaignUpdate) -> None:
        """Update name, status and/or budget of an existing platform campaign."""
        pass

    @abstractmethod
    def get_metrics(self, external_id: str) -> ChannelMetrics:
        """Read delivery metrics for a platform campaign."""
        pass

    def check_connection(self) -> dict[str, Any]:
        """Probe the platform with the configured credentials.

        Returns:
            {"success": bool, ...} with an "error" key on failure
        """
        if not self.is_configured():
            return {"success": False, "error": f"{self.display_name} API not configured"}
        return {"success": True}

    def _request(self, method: str, url: str, operation: str, **kwargs) -> dict[str, Any]:
        """Send one HTTP request and translate every failure into a ChannelError."""
        kwargs.setdefault("timeout", self.timeout)
        try:
            response = requests.request(method, url, **kwargs)
        except requests.exceptions.Timeout as e:
            raise ChannelError(
                self.channel.value, f"{self.display_name} {operation} timed out: {e}", ChannelFailureClass.TRANSIENT
            ) from e
        except requests.exceptions.RequestException as e:
            raise ChannelError(
                self.channel.value, f"{self.display_name} {operation} failed: {e}", ChannelFailureClass.TRANSIENT
            ) from e

        if response.status_code >= 400:
            raise ChannelError(
                self.channel.value,
                f"{self.display_name} {operation} failed: {self._error_message(response)}",
                classify_status(response.status_code),
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ChannelError(
                self.channel.value,
                f"{self.display_name} {operation} returned a non-JSON response",
                ChannelFailureClass.UNKNOWN,
                status_code=response.status_code,
            ) from e

    def _error_message(self, response: requests.Response) -> str:
        """Best-effort extraction of the platform's error message."""
        try:
            body = response.json()
        except ValueError:
            return f"HTTP {response.status_code}: {response.text[:200]}"
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return f"HTTP {response.status_code}: {error['message']}"
        return f"HTTP {response.status_code}: {str(body)[:200]}"
