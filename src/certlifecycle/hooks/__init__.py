"""Deploy hook rendering."""

from certlifecycle.hooks.renderer import HookRenderer

__all__ = ["HookRenderer"]
