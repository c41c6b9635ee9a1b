"""
HTTP client for the EasySplit API.
"""
import logging
from typing import Any, Dict, List, Optional
import httpx
from easysplit.core.config import settings
from easysplit.schemas.menu import MenuCreate, MenuCreatedResponse, MenuWithItemsResponse
from easysplit.schemas.split import (
    SplitCreate, SplitResponse, SplitCreatedResponse,
    SplitCalculateRequest, SplitCalculateResponse
)

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Request failed with an unexpected status or a transport error."""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class ApiValidationError(ApiError):
    """The server rejected the payload (HTTP 400)."""


class NotFoundError(ApiError):
    """No menu or split exists for the code (HTTP 404)."""


class SplitApiClient:
    """
    Thin wrapper over the REST endpoints.

    Pass ``client`` to reuse an existing ``httpx.Client`` (for example
    FastAPI's TestClient); otherwise one is created for ``base_url``.
    """

    def __init__(self, base_url: str = None, client: httpx.Client = None, timeout: float = None):
        if client is None:
            client = httpx.Client(
                base_url=base_url or settings.API_BASE_URL,
                timeout=timeout or settings.HTTP_TIMEOUT_SECONDS,
            )
        self._client = client

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _request(self, method: str, path: str, json: Dict[str, Any] = None) -> httpx.Response:
        try:
            response = self._client.request(method, f"/api{path}", json=json)
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise ApiError(f"Request to {path} failed: {e}") from e

        if response.status_code < 400:
            return response

        try:
            body = response.json()
        except ValueError:
            body = {"error": response.text}
        message = body.get("error", response.reason_phrase) if isinstance(body, dict) else str(body)
        details = body.get("details") if isinstance(body, dict) else None

        if response.status_code == 404:
            raise NotFoundError(message, response.status_code, details)
        if response.status_code == 400:
            raise ApiValidationError(message, response.status_code, details)
        raise ApiError(message, response.status_code, details)

    # Menus

    def create_menu(self, menu: MenuCreate) -> MenuCreatedResponse:
        response = self._request("POST", "/menus", menu.model_dump(by_alias=True))
        return MenuCreatedResponse.model_validate(response.json())

    def get_menu(self, code: str) -> MenuWithItemsResponse:
        response = self._request("GET", f"/menus/{code}")
        return MenuWithItemsResponse.model_validate(response.json())

    def update_menu(self, code: str, menu: MenuCreate) -> MenuWithItemsResponse:
        response = self._request("PATCH", f"/menus/{code}", menu.model_dump(by_alias=True))
        return MenuWithItemsResponse.model_validate(response.json())

    def delete_menu(self, code: str) -> bool:
        return self._request("DELETE", f"/menus/{code}").json().get("success", False)

    def get_menu_splits(self, code: str) -> List[SplitResponse]:
        response = self._request("GET", f"/menus/{code}/splits")
        return [SplitResponse.model_validate(s) for s in response.json()]

    # Splits

    def create_split(self, split: SplitCreate) -> SplitCreatedResponse:
        response = self._request("POST", "/splits", split.model_dump(mode="json", by_alias=True))
        return SplitCreatedResponse.model_validate(response.json())

    def get_split(self, code: str) -> SplitResponse:
        response = self._request("GET", f"/splits/{code}")
        return SplitResponse.model_validate(response.json())

    def update_split(self, code: str, split: SplitCreate) -> SplitResponse:
        response = self._request("PATCH", f"/splits/{code}", split.model_dump(mode="json", by_alias=True))
        return SplitResponse.model_validate(response.json())

    def calculate(self, request: SplitCalculateRequest) -> SplitCalculateResponse:
        response = self._request("POST", "/splits/calculate", request.model_dump(mode="json", by_alias=True))
        return SplitCalculateResponse.model_validate(response.json())

    def get_breakdown(self, code: str) -> str:
        return self._request("GET", f"/splits/{code}/breakdown").text
