# backend/gas_api_client.py

"""
Client for the spreadsheet-backed inventory web app (Apps Script endpoint).

Every action goes to one URL: reads are GET with `action` (and `token`)
as query parameters, writes are POST with a JSON body. Every call returns
an ApiResponse; transport problems never raise out of this module.

There is no shared instance: build a client and pass it to whatever needs
to talk to the remote side.
"""

import logging
from typing import Optional, Dict, Any
import requests
from pydantic import ValidationError

from stock_models import ApiResponse, TransactionPayload

logger = logging.getLogger(__name__)

NO_TOKEN_MESSAGE = "No token"


class GasApiClient:
    """Explicitly constructed collaborator client holding one session token"""

    def __init__(
        self,
        api_url: str,
        token: Optional[str] = None,
        timeout: float = 30,
        session: Optional[requests.Session] = None
    ):
        self.api_url = api_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self._token = token

    @classmethod
    def from_settings(cls, settings, token: Optional[str] = None, session: Optional[requests.Session] = None) -> "GasApiClient":
        return cls(settings.gas_api_url, token=token, timeout=settings.gas_api_timeout, session=session)

    # ==================== TOKEN ====================

    @property
    def token(self) -> Optional[str]:
        return self._token

    def set_token(self, token: str) -> None:
        self._token = token

    def clear_token(self) -> None:
        self._token = None

    # ==================== TRANSPORT ====================

    def _get(self, params: Dict[str, str]) -> ApiResponse:
        try:
            response = self.session.get(self.api_url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"GET {params.get('action')} failed: {e}")
            return ApiResponse.failure(str(e))
        return self._parse(response, params.get("action"))

    def _post(self, body: Dict[str, Any]) -> ApiResponse:
        try:
            response = self.session.post(self.api_url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"POST {body.get('action')} failed: {e}")
            return ApiResponse.failure(str(e))
        return self._parse(response, body.get("action"))

    def _parse(self, response, action: Optional[str]) -> ApiResponse:
        if response.status_code >= 400:
            logger.warning(f"{action} returned HTTP {response.status_code}")
            return ApiResponse.failure(f"HTTP error! status: {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            logger.error(f"{action} returned a non-JSON body: {response.text[:200]}")
            return ApiResponse.failure(f"Invalid response format: {response.text}")

        try:
            return ApiResponse.model_validate(data)
        except ValidationError as e:
            logger.error(f"{action} returned an unexpected envelope: {e}")
            return ApiResponse.failure(f"Invalid response format: {response.text}")

    def _authed_get(self, action: str, **params) -> ApiResponse:
        if not self._token:
            return ApiResponse.failure(NO_TOKEN_MESSAGE)
        return self._get({"action": action, "token": self._token, **params})

    def _authed_post(self, action: str, **fields) -> ApiResponse:
        if not self._token:
            return ApiResponse.failure(NO_TOKEN_MESSAGE)
        return self._post({"action": action, "token": self._token, **fields})

    # ==================== AUTH ====================

    def login(self, username: str, password: str) -> ApiResponse:
        result = self._post({
            "action": "login",
            "username": username,
            "password": password,
            "ip": "python-client"
        })
        if result.success and isinstance(result.data, dict) and result.data.get("token"):
            self.set_token(result.data["token"])
            logger.info(f"Logged in as {username}")
        return result

    def verify_session(self) -> ApiResponse:
        return self._authed_get("verify_session")

    def logout(self) -> ApiResponse:
        if not self._token:
            return ApiResponse(success=True, message="Logged out")
        result = self._post({"action": "logout", "token": self._token})
        self.clear_token()
        return result

    # ==================== CATALOG ====================

    def get_dashboard_stats(self) -> ApiResponse:
        return self._authed_get("get_dashboard_stats")

    def get_item_list(self, search: str = "") -> ApiResponse:
        return self._authed_get("get_barang_list", search=search)

    def get_item_detail(self, item_id: str) -> ApiResponse:
        return self._authed_get("get_barang_detail", barang_id=item_id)

    def get_suppliers(self) -> ApiResponse:
        return self._authed_get("get_suppliers")

    # ==================== TRANSACTIONS ====================

    def create_inbound_transaction(self, payload: TransactionPayload) -> ApiResponse:
        return self._authed_post("create_transaksi_masuk", transaksi=payload.to_wire(), photos=[])

    def create_outbound_transaction(self, payload: TransactionPayload) -> ApiResponse:
        return self._authed_post("create_transaksi_keluar", transaksi=payload.to_wire())

    def create_stock_opname(self, payload: TransactionPayload) -> ApiResponse:
        return self._authed_post("create_stock_opname", stock_opname=payload.to_wire())

    def get_inbound_transactions(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> ApiResponse:
        return self._authed_get("get_transaksi_masuk", start_date=start_date or "", end_date=end_date or "")

    def get_outbound_transactions(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> ApiResponse:
        return self._authed_get("get_transaksi_keluar", start_date=start_date or "", end_date=end_date or "")

    def get_stock_opnames(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> ApiResponse:
        return self._authed_get("get_stock_opname", start_date=start_date or "", end_date=end_date or "")
