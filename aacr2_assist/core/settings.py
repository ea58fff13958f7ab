from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = Field(default="AACR2 Assist", alias="APP_NAME")
    app_env: str = Field(default="local", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Rule configuration
    rule_pack_path: str | None = Field(default=None, alias="RULE_PACK_PATH")
    custom_rules: str = Field(default="{}", alias="CUSTOM_RULES")
    strict_coverage: bool = Field(default=False, alias="STRICT_COVERAGE")

    # Field scope
    enable_local_fields: bool = Field(default=False, alias="ENABLE_LOCAL_FIELDS")
    local_fields_allowlist: str = Field(default="", alias="LOCAL_FIELDS_ALLOWLIST")
    excluded_tags: str = Field(default="", alias="EXCLUDED_TAGS")

    # AI request shaping
    ai_redact_856_querystrings: bool = Field(default=True, alias="AI_REDACT_856_QUERYSTRINGS")
    ai_redaction_rules: str = Field(default="", alias="AI_REDACTION_RULES")
    ai_context_mode: str = Field(default="tag_only", alias="AI_CONTEXT_MODE")
    ai_prompt_version: str = Field(default="2.3", alias="AI_PROMPT_VERSION")
    ai_punctuation_explain: bool = Field(default=True, alias="AI_PUNCTUATION_EXPLAIN")
    ai_subject_guidance: bool = Field(default=True, alias="AI_SUBJECT_GUIDANCE")
    ai_call_number_guidance: bool = Field(default=True, alias="AI_CALL_NUMBER_GUIDANCE")
    lc_class_target: str = Field(default="050$a", alias="LC_CLASS_TARGET")
    max_subject_subfields: int = Field(default=20, alias="MAX_SUBJECT_SUBFIELDS")
    debug_mode: bool = Field(default=False, alias="DEBUG_MODE")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
