"""
Autonomous Bridge
-----------------
Browser automation bridge for services without an API.

Navigation history and page scraping are real: scraping fetches the current
URL over HTTP and parses the HTML. There is no browser engine behind this
bridge, so interactions (click, type, forms, screenshots, scripts) only log
and return canned values.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging

import httpx
from bs4 import BeautifulSoup

from core.errors import HandlerError


@dataclass
class BrowserConfig:
    """Configuration for the browser bridge."""
    headless: bool = True
    user_agent: str = "SuperAgent/1.0"
    timeout_seconds: float = 30.0
    max_text_chars: int = 20000


@dataclass
class ScrapeResult:
    url: str
    title: str = ""
    text: str = ""
    links: List[str] = field(default_factory=list)
    elements: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "text": self.text,
            "links": list(self.links),
            "elements": list(self.elements),
        }


class AutonomousBridge:
    """
    Browser bridge.

    Keeps a back/forward history like a browser tab. `transport` lets tests
    plug an httpx mock transport in.
    """

    def __init__(
        self,
        config: Optional[BrowserConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.config = config or BrowserConfig()
        self._transport = transport
        self._history: List[str] = []
        self._position = -1
        self._initialized = False
        self._logger = logging.getLogger("superagent.bridge")

    @property
    def current_url(self) -> Optional[str]:
        if self._position < 0:
            return None
        return self._history[self._position]

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        self._initialized = True
        self._logger.info("AutonomousBridge initialized")

    async def navigate(self, url: str) -> str:
        """Point the tab at `url`, dropping any forward history."""
        if not url.startswith(("http://", "https://")):
            raise HandlerError(f"Unsupported URL: {url}")
        self._history = self._history[:self._position + 1]
        self._history.append(url)
        self._position = len(self._history) - 1
        self._logger.info(f"Navigating to: {url}")
        return url

    async def go_back(self) -> Optional[str]:
        if self._position > 0:
            self._position -= 1
        return self.current_url

    async def go_forward(self) -> Optional[str]:
        if self._position < len(self._history) - 1:
            self._position += 1
        return self.current_url

    async def refresh(self) -> Optional[str]:
        self._logger.info(f"Refreshing page: {self.current_url}")
        return self.current_url

    async def wait_for_navigation(self) -> None:
        # Navigation is synchronous here; nothing to wait for.
        self._logger.debug("Waiting for navigation")

    async def scrape_page(
        self,
        url: Optional[str] = None,
        selector: Optional[str] = None,
        extract_links: bool = False,
        extract_text: bool = True
    ) -> ScrapeResult:
        """Fetch and parse a page (the current one unless `url` is given)."""
        if url:
            await self.navigate(url)
        target = self.current_url
        if target is None:
            raise HandlerError("No page loaded; navigate first")

        html = await self._fetch(target)
        soup = BeautifulSoup(html, "html.parser")

        result = ScrapeResult(url=target)
        if soup.title and soup.title.string:
            result.title = soup.title.string.strip()

        if selector:
            matches = soup.select(selector)
            result.elements = [m.get_text(" ", strip=True) for m in matches]
            if not matches:
                self._logger.warning(f"Selector matched nothing: {selector}")

        if extract_text:
            text = "\n".join(result.elements) if selector else soup.get_text(" ", strip=True)
            result.text = text[:self.config.max_text_chars]

        if extract_links:
            result.links = [
                str(a.get("href")) for a in soup.find_all("a") if a.get("href")
            ]

        return result

    async def _fetch(self, url: str) -> str:
        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                headers={"User-Agent": self.config.user_agent},
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.text
        except httpx.HTTPStatusError as e:
            raise HandlerError(f"Failed to fetch {url}: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise HandlerError(f"Failed to fetch {url}: {e}") from e

    # Interaction stubs: no browser engine is attached.

    async def click_element(self, selector: str) -> Dict[str, Any]:
        self._logger.info(f"Clicking element: {selector}")
        return {"success": True, "selector": selector}

    async def type_text(self, selector: str, text: str) -> Dict[str, Any]:
        self._logger.info(f"Typing {len(text)} chars into: {selector}")
        return {"success": True, "selector": selector}

    async def fill_form(self, form_data: Dict[str, str]) -> Dict[str, Any]:
        self._logger.info(f"Filling form fields: {', '.join(form_data)}")
        return {"success": True, "fields": list(form_data)}

    async def screenshot(self) -> Dict[str, Any]:
        self._logger.info("Taking screenshot")
        return {"success": True, "data": ""}

    async def execute_script(self, script: str) -> Any:
        self._logger.info(f"Executing script: {script[:50]}...")
        return None

    async def close(self) -> None:
        self._history.clear()
        self._position = -1
        self._initialized = False
        self._logger.info("Closing AutonomousBridge")
