import pytest


@pytest.fixture
def v1_payload():
    """Config as served by the first server version: no feature sections."""
    return {
        "title": "herbst – homelab",
        "theme": "Autumn",
        "ui": {"background": {"image": "bg.jpg", "blur": 4}, "font": "Inter"},
        "services": [
            {"name": "NAS", "url": "https://nas.local", "icon": "nas.png", "onlineBadge": True},
            {"name": "Plex", "url": "https://plex.local", "icon": ""},
        ],
        "themeVars": {"color-bg": "#0b1120", "color-accent": "#f97316"},
    }


@pytest.fixture
def full_payload(v1_payload):
    payload = dict(v1_payload)
    payload.update({
        "weather": {
            "enabled": True,
            "apiKey": "secret",
            "location": "Berlin,DE",
            "lat": 0,
            "lon": 0,
            "units": "metric",
        },
        "docker": {"enabled": True, "socketPath": "/var/run/docker.sock"},
        "system": {"enabled": True, "diskPath": "/mnt/data"},
        "sections": [
            {
                "title": "Home",
                "services": [
                    {"name": "Home Assistant", "url": "https://ha.local", "onlineBadge": True},
                    {"name": "NAS", "url": "https://nas2.local"},
                ],
            }
        ],
        "futureField": {"ignored": True},
    })
    return payload


@pytest.fixture
def container_c1():
    return {
        "id": "c1",
        "name": "web",
        "image": "nginx:latest",
        "state": "running",
        "status": "Up 2 hours",
        "created": 1700000000,
    }
