"""Click plumbing shared by the ``apex`` entry point."""

from apexctl.commands._base import ApexCommand
from apexctl.commands._context import AppContext

__all__ = ["ApexCommand", "AppContext"]
