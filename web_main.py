"""
Entry point for the glasschess web simulator.

    python web_main.py      ← session server on :8000

A client connects to ws://localhost:8000/ws/session and sends glasses hub
events as JSON (see glasschess/web/app.py). A built frontend placed under
frontend/dist is served from the same port.
"""

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "glasschess.web.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
