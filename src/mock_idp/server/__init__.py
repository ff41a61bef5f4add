"""Flask HTTP server for the mock Identity Provider."""

from mock_idp.server.app import create_app, run_server

__all__ = ["create_app", "run_server"]
