#!/usr/bin/python3
"""
Passenger WSGI entry point for the Ether Rent API (cPanel deployment)
"""
import sys
import os

sys.path.insert(0, os.path.dirname(__file__))

from app import app as application

if __name__ == '__main__':
    # Smoke test: hit /health through the WSGI app without a server
    with application.test_client() as client:
        response = client.get('/health')
        print(f"Python {sys.version.split()[0]} in {os.getcwd()}")
        print(f"GET /health -> {response.status_code} {response.get_json()}")
