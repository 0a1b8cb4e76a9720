from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .config import AppConfig, credential_from_settings, require_sheet_id
from .errors import SheetWriteError
from .sheets import SheetClient
from .token_minter import TokenMinter
from .visitor import VisitorRecord

logger = logging.getLogger("VisitorSheets")


class VisitorTracker:
    """
    The one mint -> exchange -> append chain shared by every route.

    The credential is parsed on each call and dropped afterwards; nothing is
    cached between visitors.
    """

    def __init__(
        self,
        settings: AppConfig,
        *,
        minter: Optional[TokenMinter] = None,
        sheets: Optional[SheetClient] = None,
    ) -> None:
        self.settings = settings
        self.minter = minter or TokenMinter(settings.oauth)
        self.sheets = sheets or SheetClient(settings.sheets)

    def track(self, record: VisitorRecord) -> None:
        credential = credential_from_settings(self.settings.google)
        sheet_id = require_sheet_id(self.settings.google)
        token = self.minter.mint(credential)
        self.sheets.append(token, sheet_id, record)

    def diagnose(self) -> Dict[str, Any]:
        credential = credential_from_settings(self.settings.google)
        sheet_id = require_sheet_id(self.settings.google)
        logger.info(f"Diagnostics: service account {credential.client_email}, sheet {sheet_id}")

        token = self.minter.mint(credential)
        title = self.sheets.get_metadata(token, sheet_id)
        logger.info(f"Diagnostics: sheet title {title!r}")

        result: Dict[str, Any] = {
            "serviceAccountEmail": credential.client_email,
            "sheetId": sheet_id,
        }
        try:
            values = self.sheets.get_values(token, sheet_id)
        except SheetWriteError as e:
            # Metadata worked, so report a read failure instead of failing the whole check.
            result["testResult"] = {"sheetTitle": title, "canRead": False, "error": e.body or str(e)}
            return result
        result["testResult"] = {"sheetTitle": title, "canRead": True, "existingData": values}
        return result
