"""Shared helpers for Google MCP tools."""
