"""
Widget Board Backend - Board sessions, widget store and the HTTP/WebSocket service.
"""
