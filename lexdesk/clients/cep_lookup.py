from __future__ import annotations

import logging
from typing import Any

import requests

LOGGER = logging.getLogger(__name__)


class CepLookupError(RuntimeError):
    """Upstream postal-code service failed or answered garbage."""


class CepLookupClient:
    """Resolves Brazilian postal codes (CEP) into street addresses."""

    def __init__(
        self,
        *,
        url_template: str,
        timeout_seconds: int = 8,
        session: requests.Session | None = None,
    ) -> None:
        self._url_template = url_template
        self._timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    def lookup(self, cep: str) -> dict[str, Any] | None:
        """Return the address for an 8-digit CEP, or ``None`` when unknown."""
        url = self._url_template.format(cep=cep)
        try:
            response = self._session.get(url, timeout=self._timeout_seconds)
            if response.status_code in {400, 404}:
                return None
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            LOGGER.warning("CEP lookup failed for %s: %s", cep, exc)
            raise CepLookupError(str(exc)) from exc

        if not isinstance(payload, dict) or payload.get("erro"):
            return None
        return {
            "cep": cep,
            "rua": payload.get("logradouro") or "",
            "complemento": payload.get("complemento") or "",
            "bairro": payload.get("bairro") or "",
            "cidade": payload.get("localidade") or "",
            "uf": payload.get("uf") or "",
        }
