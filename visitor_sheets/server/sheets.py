from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from .config import SheetsConfig
from .errors import SheetWriteError
from .visitor import VisitorRecord

logger = logging.getLogger("VisitorSheets")


class SheetClient:
    """Thin Sheets v4 REST client. Any non-2xx answer is fatal for the call."""

    def __init__(self, cfg: SheetsConfig) -> None:
        self.cfg = cfg

    def _auth(self, token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    def _check(self, resp: requests.Response, what: str) -> None:
        if not 200 <= resp.status_code < 300:
            logger.error(f"{what} failed: {resp.status_code} - {resp.text}")
            raise SheetWriteError(
                f"{what} failed: {resp.status_code} - {resp.text}",
                status=resp.status_code,
                body=resp.text,
            )

    def _json(self, resp: requests.Response, what: str) -> Dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as e:
            raise SheetWriteError(f"{what} returned non-JSON body", status=resp.status_code, body=resp.text) from e
        return data if isinstance(data, dict) else {}

    def append(self, token: str, sheet_id: str, record: VisitorRecord) -> None:
        url = f"{self.cfg.api_base}/{sheet_id}/values/{self.cfg.append_range}:append"
        try:
            resp = requests.post(
                url,
                params={"valueInputOption": self.cfg.value_input_option},
                headers=self._auth(token),
                json={"values": [record.as_row()]},
                timeout=self.cfg.timeout_seconds,
            )
        except requests.RequestException as e:
            raise SheetWriteError(f"Google Sheets API request failed: {e}") from e
        self._check(resp, "Google Sheets append")
        logger.info(f"Logged visitor {record.ip} {record.path} to sheet {sheet_id}")

    def get_metadata(self, token: str, sheet_id: str) -> Optional[str]:
        try:
            resp = requests.get(f"{self.cfg.api_base}/{sheet_id}", headers=self._auth(token), timeout=self.cfg.timeout_seconds)
        except requests.RequestException as e:
            raise SheetWriteError(f"Sheet metadata request failed: {e}") from e
        self._check(resp, "Sheet metadata access")
        props = self._json(resp, "Sheet metadata access").get("properties") or {}
        return props.get("title")

    def get_values(self, token: str, sheet_id: str, cell_range: Optional[str] = None) -> List[List[Any]]:
        cell_range = cell_range or self.cfg.probe_range
        try:
            resp = requests.get(
                f"{self.cfg.api_base}/{sheet_id}/values/{cell_range}",
                headers=self._auth(token),
                timeout=self.cfg.timeout_seconds,
            )
        except requests.RequestException as e:
            raise SheetWriteError(f"Values read request failed: {e}") from e
        self._check(resp, "Values read")
        return list(self._json(resp, "Values read").get("values") or [])
