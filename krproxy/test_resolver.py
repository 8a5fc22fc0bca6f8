from krproxy.clients.upstreams import ALLOWED_DOMAINS, KOREAEXIM, UNIPASS, policy_for
from krproxy.resolver import ResolvedTarget, resolve
from krproxy.utils.validation import validate_target_url


def _resolve(raw):
    return resolve(validate_target_url(raw))


def test_policy_table_is_the_allowlist():
    assert ALLOWED_DOMAINS == ("koreaexim.go.kr", "unipass.customs.go.kr")
    assert policy_for("oapi.koreaexim.go.kr") is KOREAEXIM
    assert policy_for("unipass.customs.go.kr") is UNIPASS
    assert policy_for("example.com") is None


def test_koreaexim_legacy_host_is_rewritten_and_downgraded():
    target = _resolve("https://www.koreaexim.go.kr/site/program/financial/exchangeJSON?data=AP01")
    assert target.hostname == "oapi.koreaexim.go.kr"
    assert target.scheme == "http"
    assert target.port == 80
    assert target.verify_tls is False
    assert target.policy == "koreaexim"
    assert target.url == "http://oapi.koreaexim.go.kr/site/program/financial/exchangeJSON?data=AP01"


def test_koreaexim_api_host_is_kept():
    target = _resolve("http://oapi.koreaexim.go.kr/site/program/financial/exchangeJSON")
    assert target.hostname == "oapi.koreaexim.go.kr"
    assert target.url == "http://oapi.koreaexim.go.kr/site/program/financial/exchangeJSON"


def test_unipass_defaults_to_port_38010_over_https():
    target = _resolve("https://unipass.customs.go.kr/something")
    assert target.scheme == "https"
    assert target.port == 38010
    assert target.verify_tls is False
    assert target.url == "https://unipass.customs.go.kr:38010/something"


def test_unipass_http_is_upgraded():
    target = _resolve("http://unipass.customs.go.kr/ext/rest/x")
    assert target.scheme == "https"
    assert target.port == 38010


def test_explicit_port_wins_over_domain_default():
    assert _resolve("https://unipass.customs.go.kr:8443/x").port == 8443
    assert _resolve("https://unipass.customs.go.kr:443/x").url == "https://unipass.customs.go.kr/x"
    assert _resolve("http://oapi.koreaexim.go.kr:8080/x").url == "http://oapi.koreaexim.go.kr:8080/x"


def test_resolution_is_deterministic():
    raw = "https://www.koreaexim.go.kr/site/program/financial/exchangeJSON?authkey=k"
    assert _resolve(raw) == _resolve(raw)


def test_resolved_target_url_keeps_non_default_port():
    t = ResolvedTarget(scheme="http", hostname="h.koreaexim.go.kr", port=443, path="")
    assert t.url == "http://h.koreaexim.go.kr:443/"


def test_trailing_dot_host_gets_same_policy():
    target = _resolve("https://www.koreaexim.go.kr./site/program/financial/exchangeJSON")
    assert target.hostname == "oapi.koreaexim.go.kr"
    assert target.url == "http://oapi.koreaexim.go.kr/site/program/financial/exchangeJSON"
