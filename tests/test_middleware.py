from starlette.requests import Request

from freegym.core.middleware import get_client_ip


def _request(peer, headers=None):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": (peer, 50000),
    }
    return Request(scope)


def test_forwarded_header_from_untrusted_peer_is_ignored():
    request = _request("203.0.113.7", {"X-Forwarded-For": "1.2.3.4", "X-Real-IP": "5.6.7.8"})

    assert get_client_ip(request, trusted_proxies=set()) == "203.0.113.7"


def test_forwarded_header_from_trusted_proxy():
    request = _request("10.0.0.2", {"X-Forwarded-For": "1.2.3.4, 10.0.0.9"})

    assert get_client_ip(request, trusted_proxies={"10.0.0.2"}) == "1.2.3.4"


def test_real_ip_header_from_trusted_proxy():
    request = _request("10.0.0.2", {"X-Real-IP": "5.6.7.8"})

    assert get_client_ip(request, trusted_proxies={"10.0.0.2"}) == "5.6.7.8"


def test_default_trusts_no_proxy():
    request = _request("198.51.100.1", {"X-Forwarded-For": "1.2.3.4"})

    assert get_client_ip(request) == "198.51.100.1"
