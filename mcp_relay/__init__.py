"""
MCP Relay - HTTP front door for a stdio JSON-RPC server.

This package relays JSON-RPC requests received over HTTP to a single
line-delimited JSON-RPC subprocess, and supervises the relay process
itself with bounded restart backoff.
"""

__version__ = "1.0.0"
