import json
import logging

import pytest

from bizdash.config import DashboardSettings, get_settings
from bizdash.logging_conf import JsonFormatter, configure_logging


class TestSettings:

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("BIZDASH_API_BASE_URL", "https://erp.example.com/api/")
        monkeypatch.setenv("BIZDASH_VAT_RATE", "0.14")
        settings = get_settings()
        assert settings.base_url == "https://erp.example.com/api"
        assert settings.service_billing_url == "https://erp.example.com/api/service-billing"
        assert settings.VAT_RATE == 0.14

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("BIZDASH_API_BASE_URL", "https://erp.example.com/api")
        assert get_settings(API_BASE_URL="http://other/api").base_url == "http://other/api"

    def test_headers(self):
        settings = DashboardSettings()
        assert "Authorization" not in settings.headers()
        assert settings.headers("abc")["Authorization"] == "Bearer abc"

    @pytest.mark.parametrize("overrides", [{"API_BASE_URL": " "}, {"REQUEST_TIMEOUT": 0}])
    def test_validate(self, overrides):
        with pytest.raises(ValueError):
            DashboardSettings(**overrides).validate()


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


class TestLogging:

    def test_json_formatter_passes_extras(self):
        record = logging.LogRecord("bizdash.billing", logging.WARNING, __file__, 1,
                                   "Invoice %s failed", ("SB-1",), None)
        record.customer_id = 4
        payload = json.loads(JsonFormatter().format(record))
        assert payload["level"] == "WARNING"
        assert payload["message"] == "Invoice SB-1 failed"
        assert payload["customer_id"] == 4

    def test_configure_replaces_handlers(self, restore_root_logger):
        root = restore_root_logger
        handler = configure_logging("debug", json_output=True)
        assert root.handlers == [handler]
        assert root.level == logging.DEBUG
        assert isinstance(handler.formatter, JsonFormatter)
