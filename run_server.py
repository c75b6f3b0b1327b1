#!/usr/bin/env python3
"""
Evolver — Server Launcher

Usage: python run_server.py [port]
"""
import sys

import uvicorn

from evolver.logging_setup import setup_logger
from evolver.server import app

if __name__ == "__main__":
    port = int(sys.argv[1]) if len(sys.argv) > 1 else 8000
    setup_logger("INFO")
    print(f"Evolver server: http://localhost:{port}")
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="warning")
