"""
Microsoft Graph access.

Components:
    auth.py: ClientSecretCredential (client credentials flow, cached tokens)
    client.py: GraphClient (one coroutine per remote call)
"""

from graphtool.graph.auth import AccessToken, ClientSecretCredential
from graphtool.graph.client import GRAPH_API_BASE, GraphClient


__all__ = ["GRAPH_API_BASE", "AccessToken", "ClientSecretCredential", "GraphClient"]
