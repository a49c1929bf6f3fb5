"""Provision and deploy Node.js apps on a single VPS."""

__version__ = "0.1.0"
