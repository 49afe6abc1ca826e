import logging
from unittest.mock import MagicMock

import pytest

from endpoint_resolver.errors import ConfigFetchError
from endpoint_resolver.fetcher import GlobalConfigFetcher

GOOD = {
    "code": 0,
    "data": {
        "domains": [{"domain": "a.com", "certType": "self", "label": "main"}],
        "services": [{"name": "chat", "path": "/chat", "domains": ["main"]}],
        "disappearanceTimeInterval": {"message": {"default": 86400}},
    },
}


def _client(responses):
    client = MagicMock()
    client.get_global_config.side_effect = lambda url: _answer(responses[url])
    return client


def _answer(outcome):
    if isinstance(outcome, Exception):
        raise outcome
    return outcome


def test_first_success_wins_and_stops_iteration():
    client = _client({"https://one": GOOD, "https://two": GOOD})

    config = GlobalConfigFetcher(client).fetch(["https://one", "https://two"])

    assert config is not None
    assert config.domains[0].domain == "a.com"
    assert config.services[0].name == "chat"
    assert config.extra["disappearanceTimeInterval"]["message"]["default"] == 86400
    client.get_global_config.assert_called_once_with("https://one")


def test_falls_through_failures_in_order():
    client = _client(
        {
            "https://one": ConnectionError("boom"),
            "https://two": {"code": 5, "data": GOOD["data"]},
            "https://three": {"code": 0, "data": None},
            "https://four": GOOD,
        }
    )

    config = GlobalConfigFetcher(client).fetch(["https://one", "https://two", "https://three", "https://four"])

    assert config is not None
    assert [c.args[0] for c in client.get_global_config.call_args_list] == [
        "https://one",
        "https://two",
        "https://three",
        "https://four",
    ]


def test_all_failing_returns_none_without_raising(caplog):
    caplog.set_level(logging.ERROR, logger="endpoint_resolver.fetcher")
    client = _client({"https://one": {"code": 1, "data": None}, "https://two": TimeoutError("slow")})

    assert GlobalConfigFetcher(client).fetch(["https://one", "https://two"]) is None
    assert any("ALL failed" in r.getMessage() for r in caplog.records)


def test_fetch_or_raise_reports_exhaustion():
    client = _client({})

    with pytest.raises(ConfigFetchError):
        GlobalConfigFetcher(client).fetch_or_raise([])


def test_success_is_logged_with_counts(caplog):
    caplog.set_level(logging.INFO, logger="endpoint_resolver.fetcher")
    client = _client({"https://one": GOOD})

    GlobalConfigFetcher(client).fetch(["https://one"])

    records = [r for r in caplog.records if r.message == "resolver_global_config_fetched"]
    assert records
    assert records[0].resolver["url"] == "https://one"
    assert records[0].resolver["domains"] == 1
