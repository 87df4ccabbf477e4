# sauceci_tasks.py
# Example task targets; run with e.g. `sauceci qunit succeeds`
from __future__ import annotations

BROWSERS = [
    {"browserName": "firefox", "version": "latest", "platform": "Windows 10"},
    {"browserName": "chrome", "version": "latest", "platform": "macOS 13"},
]


def _options(page: str, name: str) -> dict:
    return {
        "urls": [f"http://127.0.0.1:9999/test/{page}"],
        "browsers": BROWSERS,
        "testname": name,
        "tags": ["sauceci"],
        "maxRetries": 1,
    }


def tasks():
    return {
        "qunit": {
            "succeeds": _options("qunit/index.html", "qunit succeeds"),
            "fails": _options("qunit/failing.html", "qunit fails"),
        },
        "jasmine": {
            "succeeds": _options("jasmine/SpecRunner.html", "jasmine succeeds"),
        },
        "mocha": {
            "succeeds": _options("mocha/index.html", "mocha succeeds"),
        },
        "custom": {
            "succeeds": _options("custom/index.html", "custom succeeds"),
            "callback-succeeds": {
                **_options("custom/failing.html", "custom callback"),
                # the page fails on purpose; the callback decides the verdict
                "onTestComplete": lambda result: True,
            },
        },
    }
