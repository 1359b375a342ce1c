"""
Host I/O redirection hooks.

An embedding application can route script output and input to its own
view by installing handlers here. Until a handler is installed the
corresponding `$` method only logs "Method unregistered.".

Author: xwest
"""

from dataclasses import dataclass
from typing import Callable, Optional

from .errors import NyaRuntimeWarning
from .values import DynamicValue, to_text


@dataclass
class RedirectHooks:
    """Handlers supplied by the host application."""
    push_line: Optional[Callable[[str], None]] = None
    push_format_line: Optional[Callable[[str], None]] = None
    wait_input: Optional[Callable[[], int]] = None
    clear_view: Optional[Callable[[], None]] = None

    def clear(self):
        """Uninstall every handler."""
        self.push_line = None
        self.push_format_line = None
        self.wait_input = None
        self.clear_view = None


# Hooks used by the default native registry
hooks = RedirectHooks()


def _unregistered(method: str):
    NyaRuntimeWarning.log(f"In static method [Redirect : ${method}]: Method unregistered.")


def register_redirects(registry, target: Optional[RedirectHooks] = None):
    """Add PushLine, PushFormatLine, WaitInput and ClearView to a registry."""
    target = target if target is not None else hooks

    @registry.native("PushLine")
    def push_line(value: DynamicValue):
        if target.push_line is None:
            _unregistered("PushLine")
        else:
            target.push_line(to_text(value))

    @registry.native("PushFormatLine")
    def push_format_line(value: DynamicValue):
        if target.push_format_line is None:
            _unregistered("PushFormatLine")
        else:
            target.push_format_line(to_text(value))

    @registry.native("WaitInput")
    def wait_input():
        if target.wait_input is None:
            _unregistered("WaitInput")
            return -1
        return target.wait_input()

    @registry.native("ClearView")
    def clear_view():
        if target.clear_view is None:
            _unregistered("ClearView")
        else:
            target.clear_view()

    return registry
