"""
Dépendances FastAPI partagées par les routes.
"""
from fastapi import Request

from ..bridge import Bridge


def get_bridge(request: Request) -> Bridge:
    """Retourne le bridge attaché à l'application courante."""
    return request.app.state.bridge
