"""
Couche HTTP/WebSocket (FastAPI).
"""
