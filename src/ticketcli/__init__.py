"""ticketcli: command-line client for a ticket-tracking service's REST API."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("ticketcli")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from ticketcli.client import ReauthInterceptor, TrackerClient
from ticketcli.editing import EditSubmitLoop, edit_loop
from ticketcli.errors import Abort

__all__ = ["Abort", "EditSubmitLoop", "ReauthInterceptor", "TrackerClient", "__version__", "edit_loop"]
