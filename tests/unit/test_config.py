"""Tests for NotionSiteConfig validation and YAML loading."""

from __future__ import annotations

import pytest
import yaml

from notionsite.config import (
    DEFAULT_CONFIG_FILENAME,
    TOKEN_ENV_VAR,
    DynamicProp,
    NotionSiteConfig,
    default_config_document,
    load_config,
    write_default_config,
)
from notionsite.errors import ErrorCode, NotionSiteConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # setenv first so that teardown also removes values loaded from .env
    monkeypatch.setenv(TOKEN_ENV_VAR, "placeholder")
    monkeypatch.delenv(TOKEN_ENV_VAR)


def write_yaml(directory, document) -> str:
    path = directory / DEFAULT_CONFIG_FILENAME
    path.write_text(yaml.safe_dump(document, sort_keys=False), encoding="utf-8")
    return str(path)


MINIMAL = {"notion": {"databaseId": "db-123"}}


# ---------------------------------------------------------------------------
# Dataclass validation
# ---------------------------------------------------------------------------

class TestValidation:
    def test_defaults(self):
        config = NotionSiteConfig(token="t")
        assert config.notion_version == "2022-06-28"
        assert config.more_threshold == 60
        assert config.media_dir == "media"
        assert config.max_workers == 1

    def test_insecure_base_url_rejected(self):
        with pytest.raises(ValueError, match="insecure HTTP"):
            NotionSiteConfig(base_url="http://api.example.com/v1")

    def test_localhost_http_allowed(self):
        NotionSiteConfig(base_url="http://localhost:8080/v1")

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("page_size", 0),
            ("page_size", 101),
            ("retry_max_attempts", 0),
            ("rate_limit_rps", 0),
            ("timeout_seconds", 0),
            ("more_threshold", -1),
            ("max_workers", 0),
            ("media_dir", "a/b"),
        ],
    )
    def test_out_of_range(self, field, value):
        with pytest.raises(ValueError):
            NotionSiteConfig(**{field: value})

    def test_repr_masks_token(self):
        text = repr(NotionSiteConfig(token="secret_abcdef1234"))
        assert "secret_abcdef1234" not in text
        assert "...1234" in text

    def test_updates_status(self):
        assert NotionSiteConfig(filter_prop="Status", published_value="Published").updates_status
        assert not NotionSiteConfig(filter_prop="Status").updates_status

    def test_dynamic_prop_requires_name(self):
        with pytest.raises(ValueError):
            DynamicProp(name="")

    def test_dynamic_prop_key_and_default(self):
        prop = DynamicProp(name="Weight", default_value=0)
        assert prop.key == "weight"
        assert prop.has_default
        assert not DynamicProp(name="x", default_value="").has_default


# ---------------------------------------------------------------------------
# load_config
# ---------------------------------------------------------------------------

class TestLoadConfig:
    def test_full_document(self, tmp_path, monkeypatch):
        monkeypatch.setenv(TOKEN_ENV_VAR, "secret_from_env")
        path = write_yaml(tmp_path, {
            "notion": {
                "databaseId": "db-123",
                "filterProp": "Status",
                "filterValue": ["Finished", "Published"],
                "publishedValue": "Published",
                "pageSize": 50,
            },
            "markdown": {
                "homePath": "site",
                "groupByMonth": True,
                "template": "",
                "extendedSyntax": True,
                "moreThreshold": 120,
                "workers": 3,
            },
            "dynamicProps": [
                {"name": "Weight", "type": "Number", "outputType": "string", "defaultValue": 0},
            ],
        })
        config = load_config(path)

        assert config.token == "secret_from_env"
        assert config.database_id == "db-123"
        assert config.filter_values == ["Finished", "Published"]
        assert config.page_size == 50
        assert config.home_path == "site"
        assert config.group_by_month is True
        assert config.content_template is None
        assert config.extended_syntax is True
        assert config.more_threshold == 120
        assert config.max_workers == 3
        assert config.dynamic_props == [
            DynamicProp(name="Weight", type="number", output_type="string", default_value=0),
        ]

    def test_token_from_dotenv(self, tmp_path):
        (tmp_path / ".env").write_text(f"{TOKEN_ENV_VAR}=secret_dotenv\n", encoding="utf-8")
        config = load_config(write_yaml(tmp_path, MINIMAL))
        assert config.token == "secret_dotenv"

    def test_environment_wins_over_dotenv(self, tmp_path, monkeypatch):
        monkeypatch.setenv(TOKEN_ENV_VAR, "secret_env")
        (tmp_path / ".env").write_text(f"{TOKEN_ENV_VAR}=secret_dotenv\n", encoding="utf-8")
        assert load_config(write_yaml(tmp_path, MINIMAL)).token == "secret_env"

    def test_empty_home_path_means_cwd(self, tmp_path, monkeypatch):
        monkeypatch.setenv(TOKEN_ENV_VAR, "t")
        path = write_yaml(tmp_path, {**MINIMAL, "markdown": {"homePath": ""}})
        assert load_config(path).home_path == "."

    def test_overrides_win(self, tmp_path, monkeypatch):
        monkeypatch.setenv(TOKEN_ENV_VAR, "t")
        path = write_yaml(tmp_path, {**MINIMAL, "markdown": {"workers": 2}})
        config = load_config(path, max_workers=8, extended_syntax=None)
        assert config.max_workers == 8
        assert config.extended_syntax is False

    def test_missing_file(self, tmp_path):
        with pytest.raises(NotionSiteConfigError) as exc_info:
            load_config(tmp_path / "nope.yaml")
        assert exc_info.value.code is ErrorCode.CONFIG_ERROR

    def test_unparsable_yaml(self, tmp_path):
        path = tmp_path / DEFAULT_CONFIG_FILENAME
        path.write_text("notion: [unclosed\n", encoding="utf-8")
        with pytest.raises(NotionSiteConfigError):
            load_config(path)

    def test_unknown_key(self, tmp_path, monkeypatch):
        monkeypatch.setenv(TOKEN_ENV_VAR, "t")
        path = write_yaml(tmp_path, {"notion": {"databaseId": "db", "databaseID": "typo"}})
        with pytest.raises(NotionSiteConfigError) as exc_info:
            load_config(path)
        assert exc_info.value.context["field"] == "notion.databaseID"

    def test_missing_database_id(self, tmp_path, monkeypatch):
        monkeypatch.setenv(TOKEN_ENV_VAR, "t")
        with pytest.raises(NotionSiteConfigError) as exc_info:
            load_config(write_yaml(tmp_path, {"notion": {}}))
        assert exc_info.value.context["field"] == "notion.databaseId"

    def test_missing_token(self, tmp_path):
        with pytest.raises(NotionSiteConfigError) as exc_info:
            load_config(write_yaml(tmp_path, MINIMAL))
        assert exc_info.value.context["field"] == TOKEN_ENV_VAR

    def test_invalid_value_wrapped(self, tmp_path, monkeypatch):
        monkeypatch.setenv(TOKEN_ENV_VAR, "t")
        path = write_yaml(tmp_path, {**MINIMAL, "markdown": {"moreThreshold": -5}})
        with pytest.raises(NotionSiteConfigError, match="more_threshold"):
            load_config(path)

    def test_dynamic_props_must_be_list(self, tmp_path, monkeypatch):
        monkeypatch.setenv(TOKEN_ENV_VAR, "t")
        with pytest.raises(NotionSiteConfigError):
            load_config(write_yaml(tmp_path, {**MINIMAL, "dynamicProps": {"name": "x"}}))

    def test_dynamic_prop_without_name(self, tmp_path, monkeypatch):
        monkeypatch.setenv(TOKEN_ENV_VAR, "t")
        with pytest.raises(NotionSiteConfigError) as exc_info:
            load_config(write_yaml(tmp_path, {**MINIMAL, "dynamicProps": [{"type": "select"}]}))
        assert exc_info.value.context["field"] == "dynamicProps[0]"


# ---------------------------------------------------------------------------
# write_default_config
# ---------------------------------------------------------------------------

class TestWriteDefaultConfig:
    def test_writes_both_files(self, tmp_path):
        config_path, env_path = write_default_config(tmp_path / "blog")
        assert yaml.safe_load(config_path.read_text(encoding="utf-8")) == default_config_document()
        assert env_path.read_text(encoding="utf-8") == f"{TOKEN_ENV_VAR}=xxxx\n"

    def test_existing_files_untouched(self, tmp_path):
        (tmp_path / DEFAULT_CONFIG_FILENAME).write_text("custom: true\n", encoding="utf-8")
        write_default_config(tmp_path)
        assert (tmp_path / DEFAULT_CONFIG_FILENAME).read_text(encoding="utf-8") == "custom: true\n"

    def test_starter_loads_with_token(self, tmp_path):
        config_path, _ = write_default_config(tmp_path)
        config = load_config(config_path)
        assert config.token == "xxxx"
        assert config.published_value == "Published"
