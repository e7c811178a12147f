import logging
import os
from collections.abc import Callable
from pathlib import Path
from types import TracebackType
from typing import Any, Self

import httpx

from modmirror.schemas.modio import FileRecord, ModRecord

logger = logging.getLogger(__name__)

BASE_URL = "https://api.mod.io/v1"

_PAGE_SIZE = 100  # mod.io maximum for _limit
_STREAM_CHUNK_SIZE = 65_536  # 64 KB
_VISIBLE_PUBLIC_AND_HIDDEN = "0,1"


class ModioError(Exception):
    pass


class ModioRateLimitError(ModioError):
    def __init__(self, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(f"Rate limited (retry after {retry_after}s)")


class ModioClient:
    def __init__(
        self,
        access_token: str,
        *,
        game_id: int,
        base_url: str = BASE_URL,
    ) -> None:
        self._access_token = access_token
        self._game_id = game_id
        self._base_url = base_url
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "Authorization": f"Bearer {self._access_token}",
                "Accept": "application/json",
            },
            timeout=30.0,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._client:
            await self._client.aclose()

    @property
    def client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("ModioClient not entered as context manager")
        return self._client

    def _check_rate_limit(self, resp: httpx.Response) -> None:
        if resp.status_code == 429:
            raise ModioRateLimitError(int(resp.headers.get("X-RateLimit-RetryAfter", "0") or 0))

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        resp = await self.client.get(path, params=params)
        self._check_rate_limit(resp)
        resp.raise_for_status()
        return resp.json()

    async def list_visible_mods(self) -> list[ModRecord]:
        """Fetch every public or hidden mod of the game, following pagination."""
        mods: list[ModRecord] = []
        offset = 0
        while True:
            page = await self._get(
                f"/games/{self._game_id}/mods",
                params={
                    "visible-in": _VISIBLE_PUBLIC_AND_HIDDEN,
                    "_offset": offset,
                    "_limit": _PAGE_SIZE,
                },
            )
            data = page.get("data", [])
            mods.extend(ModRecord.from_api(item) for item in data)
            offset += len(data)
            total = page.get("result_total", 0)
            logger.debug("Fetched %d/%d mods", offset, total)
            if not data or offset >= total:
                break
        return mods

    async def download_file(
        self,
        file: FileRecord,
        dest: Path,
        *,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> None:
        """Stream *file*'s archive to *dest*.

        Bytes go to a ``.part`` sibling opened with a truncating write and are
        renamed over *dest* only once the stream completes.
        """
        if not file.download_url:
            raise ModioError(f"File {file.id} has no download URL")
        dest.parent.mkdir(parents=True, exist_ok=True)
        partial = dest.with_name(dest.name + ".part")
        try:
            async with self.client.stream(
                "GET", file.download_url, follow_redirects=True, timeout=300.0
            ) as resp:
                self._check_rate_limit(resp)
                resp.raise_for_status()
                total = int(resp.headers.get("Content-Length", 0)) or file.size
                downloaded = 0
                with open(partial, "wb") as f:
                    async for chunk in resp.aiter_bytes(chunk_size=_STREAM_CHUNK_SIZE):
                        f.write(chunk)
                        downloaded += len(chunk)
                        if progress_callback:
                            progress_callback(downloaded, total)
            os.replace(partial, dest)
        except BaseException:
            partial.unlink(missing_ok=True)
            raise
