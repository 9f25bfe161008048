import json
import logging

from talentmatch.logging_config import JsonFormatter, RequestIdFilter, req_id_var
from talentmatch.settings import Settings


class TestSettings:
    def test_derived_urls(self):
        s = Settings(SUPABASE_URL="https://p.supabase.test/")
        assert s.auth_url == "https://p.supabase.test/auth/v1"
        assert s.rest_url == "https://p.supabase.test/rest/v1"

    def test_legacy_hosts_parsed(self):
        assert Settings(LEGACY_HOSTS=" Old.com, ,legacy.io").legacy_host_list == ["old.com", "legacy.io"]

    def test_secure_cookies_follow_env(self):
        assert Settings(ENV="dev").secure_cookies is False
        assert Settings(ENV="prod").secure_cookies is True
        assert Settings(ENV="prod", COOKIE_SECURE=False).secure_cookies is False

    def test_state_key_falls_back_to_client_secret(self):
        assert Settings(GITHUB_CLIENT_SECRET="cs", GITHUB_STATE_SECRET="").github_state_key() == "cs"
        assert Settings(GITHUB_CLIENT_SECRET="cs", GITHUB_STATE_SECRET="ss").github_state_key() == "ss"

    def test_callback_uri_from_app_url(self):
        s = Settings(APP_URL="https://www.example.com/", GITHUB_REDIRECT_URI=None)
        assert s.github_callback_uri() == "https://www.example.com/api/oauth/github/callback"

    def test_env_vars_are_read(self, monkeypatch):
        monkeypatch.setenv("REFERRAL_COOKIE_NAME", "custom_ref")
        assert Settings().REFERRAL_COOKIE_NAME == "custom_ref"

    def test_lowercase_env_names_map_to_fields(self, monkeypatch):
        monkeypatch.setenv("legacy_hosts", "old.com")
        monkeypatch.setenv("http_client_timeout", "2.5")
        s = Settings()
        assert s.legacy_host_list == ["old.com"]
        assert s.HTTP_CLIENT_TIMEOUT == 2.5


def test_json_formatter_carries_request_id_and_meta():
    token = req_id_var.set("req-42")
    try:
        record = logging.LogRecord("talentmatch.test", logging.INFO, __file__, 1, "hello", None, None)
        record.meta = {"user_id": "user-1"}
        RequestIdFilter().filter(record)
        payload = json.loads(JsonFormatter().format(record))
    finally:
        req_id_var.reset(token)
    assert payload["req_id"] == "req-42"
    assert payload["msg"] == "hello"
    assert payload["meta"] == {"user_id": "user-1"}
    assert payload["component"] == "talentmatch.test"
