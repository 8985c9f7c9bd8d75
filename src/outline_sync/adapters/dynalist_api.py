"""Dynalist API client with optional caching of read calls."""

import hashlib
import json
from pathlib import Path
from typing import Any

import requests
from loguru import logger

from outline_sync.config import API_CACHE_PREFIX, API_TOKEN_FILES

# Calls that change the remote side are never served from cache.
_WRITE_PATHS = frozenset({"doc/edit", "file/edit"})


class DynalistApiError(RuntimeError):
    """The API answered with a non-Ok code."""

    def __init__(self, path: str, code: str, message: str | None) -> None:
        super().__init__(f"API call failed: {path!r} -> ({code!r}, {message!r})")
        self.path = path
        self.code = code


class DynalistApi:
    """Encapsulated Dynalist API with caching."""

    def __init__(self, *, from_cache: bool = False, token: str | None = None) -> None:
        self.from_cache = from_cache
        self.sess = requests.Session()

        api_token_name = "argument"
        if token is not None:
            self.api_token = token
        else:
            for token_path in API_TOKEN_FILES:
                try:
                    self.api_token = token_path.read_text(encoding="utf-8").strip()
                    api_token_name = str(token_path)
                    break
                except FileNotFoundError:
                    pass
            else:
                msg = f"Cannot find dynalist token file, was looking at {API_TOKEN_FILES!r}"
                raise RuntimeError(msg)

        self.api_cache_prefix: str | None = API_CACHE_PREFIX if from_cache else None

        logger.debug(
            "API ready: token from {!r}, from_cache {!r}, api_cache_prefix {!r}",
            api_token_name,
            self.from_cache,
            self.api_cache_prefix,
        )

        if self.api_cache_prefix:
            Path(self.api_cache_prefix).parent.mkdir(parents=True, exist_ok=True)

    def _cache_name(self, path: str, args: dict[str, Any]) -> str | None:
        if not self.api_cache_prefix or path in _WRITE_PATHS:
            return None
        name_last = path
        if args:
            params_str = json.dumps(args, sort_keys=True, separators=(",", ":"))
            if len(params_str) > 64:
                params_str = hashlib.sha1(params_str.encode("utf-8")).hexdigest()
            name_last += "--" + params_str
        return self.api_cache_prefix + name_last.replace("/", "--")

    def call(self, path: str, args: dict[str, Any]) -> dict[str, Any]:
        """Invoke dynalist API, return json.

        Raises:
            DynalistApiError: The response code is not Ok.
            requests.HTTPError: The HTTP request failed.
        """
        cache_name = self._cache_name(path, args)
        if cache_name and Path(cache_name).exists():
            logger.debug("Filled from cache: {!r}", cache_name)
            with open(cache_name, encoding="utf-8") as f:
                return json.load(f)  # type: ignore[no-any-return]

        logger.debug("Making request: {!r} {}", path, repr(args)[:32])

        r = self.sess.post(
            f"https://dynalist.io/api/v1/{path}",
            json.dumps({"token": self.api_token, **args}),
        )
        r.raise_for_status()
        rv: dict[str, Any] = r.json()
        if rv["_code"] != "Ok" or rv.get("_msg"):
            raise DynalistApiError(path, rv["_code"], rv.get("_msg"))
        if cache_name:
            with open(cache_name, "w", encoding="utf-8") as f:
                f.write(r.text)

        return rv
