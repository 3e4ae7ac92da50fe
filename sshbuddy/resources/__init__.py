"""MCP resources for sshbuddy."""

from sshbuddy.resources.hosts import host_detail_resource, list_hosts_resource

__all__ = ["host_detail_resource", "list_hosts_resource"]
