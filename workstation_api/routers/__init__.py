"""
HTTP and WebSocket routers of the workstation API.
"""
