"""Service wiring shared by the HTTP server and tests."""

from switchboard.core.context import ServiceContext, build_context

__all__ = ["ServiceContext", "build_context"]
