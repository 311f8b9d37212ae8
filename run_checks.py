"""Smoke-check a running configuration: python run_checks.py"""

from fastapi.testclient import TestClient

from hydrowatch.main import app

with TestClient(app) as client:
    print('HEALTH:')
    print(client.get('/health').json())

    print('\nDB HEALTH:')
    resp = client.get('/health/db')
    print(resp.status_code, resp.json())

    print('\nWATER SERVICES:')
    resp = client.get('/api/water-services')
    print(resp.status_code, f"{len(resp.json())} service(s)" if resp.status_code == 200 else resp.json())

    print('\nMAP CONFIG:')
    print(client.get('/api/map/config').json())
