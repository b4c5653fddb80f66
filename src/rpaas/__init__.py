"""Reverse-proxy-as-a-service provisioning API, ACL client and CLI."""

__version__ = "0.1.0"
