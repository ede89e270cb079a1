#!/usr/bin/env python3
"""
Run script for the Concierge Backend
"""
import uvicorn

from concierge.config.settings import settings
from concierge.main import app

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port, reload=settings.debug)
