# ports.py
from __future__ import annotations

import re

# Not every port is proxied by Sauce Connect. These are the ones that are
# (see https://saucelabs.com/docs/connect#localhost).
SUPPORTED_PORTS = frozenset({
    80, 443, 888, 2000, 2001, 2020, 2109, 2222, 2310, 3000, 3001, 3030,
    3210, 3333, 4000, 4001, 4040, 4321, 4502, 4503, 4567, 5000, 5001, 5050,
    5555, 5432, 6000, 6001, 6060, 6666, 6543, 7000, 7070, 7774, 7777, 8000,
    8001, 8003, 8031, 8080, 8081, 8765, 8888, 9000, 9001, 9080, 9090, 9876,
    9877, 9999, 49221, 55001,
})

_PORT_RE = re.compile(r":(\d+)/")


def unsupported_port(url: str) -> bool:
    """True if `url` names an explicit port the tunnel does not proxy."""
    match = _PORT_RE.search(url or "")
    if not match:
        return False
    return int(match.group(1)) not in SUPPORTED_PORTS
