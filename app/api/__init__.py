"""HTTP-Schicht – FastAPI-Routen auf dem NiceGUI-Server.

Der Import von `app.api.routes` registriert die Endpunkte.
"""
