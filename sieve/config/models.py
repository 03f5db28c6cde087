"""Pydantic models describing sieve options and entry declarations."""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_USER_AGENT = "Mozilla/4.0 (compatible; MSIE 8.0; Windows NT 6.0; Trident/4.0)"
ONE_DAY = 60 * 60 * 24


def _default_headers() -> dict[str, str]:
    return {"User-Agent": DEFAULT_USER_AGENT}


class SieveOptions(BaseModel):
    """Process-wide defaults, overridable per call and per entry."""

    headers: dict[str, str] = Field(default_factory=_default_headers)
    port: int = 80
    timeout: float = 10.0
    method: str = "GET"
    # Delay between scheduling batch requests, and between empty-body retries
    wait: float = 1.0
    # Maximum number of attempts per url, redirects included
    tries: int = 3
    cache: float = ONE_DAY
    verbose: bool = False

    @field_validator("method")
    @classmethod
    def _upper_method(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("method cannot be empty")
        return value.strip().upper()

    @model_validator(mode="after")
    def _validate_ranges(self) -> "SieveOptions":
        if not 0 < self.port < 65536:
            raise ValueError("port must be between 1 and 65535")
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.wait < 0:
            raise ValueError("wait must be >= 0")
        if self.tries < 0:
            raise ValueError("tries must be >= 0")
        if self.cache <= 0:
            raise ValueError("cache must be > 0")
        return self

    def merged(self, overrides: Mapping[str, Any] | "SieveOptions" | None) -> "SieveOptions":
        """Return a validated copy with ``overrides`` applied on top.

        Header mappings are merged key by key so a call can add a header
        without dropping the default User-Agent.
        """

        if overrides is None:
            return self
        if isinstance(overrides, SieveOptions):
            overrides = overrides.model_dump(exclude_unset=True)
        payload = self.model_dump()
        for key, value in overrides.items():
            if key == "headers" and isinstance(value, Mapping):
                payload["headers"] = {**payload["headers"], **value}
            else:
                payload[key] = value
        return SieveOptions.model_validate(payload)


class Entry(BaseModel):
    """A single fetch specification."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    url: str
    method: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    wait: float | None = None
    cache: float | None = None
    selector: str | dict[str, str] | None = None
    engine: str | None = None
    # Chained declarations are validated by the nested request that runs them
    then: dict[str, Any] | list[dict[str, Any]] | None = None
    data: dict[str, Any] | None = None
    selection: Any = None
    debug: bool = False

    @field_validator("url")
    @classmethod
    def _strip_url(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("url cannot be empty")
        return value

    @field_validator("method")
    @classmethod
    def _upper_method(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip().upper()
        return value or None

    @field_validator("wait", "cache")
    @classmethod
    def _non_negative(cls, value: float | None) -> float | None:
        if value is not None and value < 0:
            raise ValueError("must be >= 0")
        return value

    @field_validator("engine")
    @classmethod
    def _lower_engine(cls, value: str | None) -> str | None:
        return value.strip().lower() if value else None

    def request_fields(self) -> dict[str, Any]:
        """Fields that shape the HTTP request, used for response-tier keys."""

        payload: dict[str, Any] = {
            "url": self.url,
            "headers": self.headers,
            "cache": self.cache,
        }
        if self.method:
            payload["method"] = self.method
        return payload

    def effective_wait(self, options: SieveOptions) -> float:
        return self.wait if self.wait is not None else options.wait


__all__ = ["DEFAULT_USER_AGENT", "Entry", "ONE_DAY", "SieveOptions"]
