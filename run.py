#!/usr/bin/env python3
"""
Run script for the Image Answer backend
"""
import uvicorn

from image_answer.config.settings import settings
from image_answer.main import app

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port, reload=settings.debug)
