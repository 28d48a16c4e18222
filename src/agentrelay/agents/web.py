"""
Web agent: search, scrape, screenshot and change monitoring.

Plain HTTP through httpx. Screenshots need the optional Playwright extra.
"""

import hashlib
import html
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import httpx

from agentrelay.agents.base import Agent, load_json, save_json
from agentrelay.errors import ToolError
from agentrelay.reliability import require_string

log = logging.getLogger(__name__)

BROWSER_UA = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
INSTANT_ANSWER_URL = "https://api.duckduckgo.com/"
HTML_SEARCH_URL = "https://html.duckduckgo.com/html/"
MAX_CONTENT_CHARS = 5000

_TITLE_RE = re.compile(r"<title[^>]*>([^<]*)</title>", re.IGNORECASE)
_SCRIPT_RE = re.compile(r"<(script|style)[^>]*>.*?</\1>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")
_RESULT_RE = re.compile(r'<a[^>]*class="result__a"[^>]*href="([^"]*)"[^>]*>(.*?)</a>', re.DOTALL)
_SNIPPET_RE = re.compile(r'<a[^>]*class="result__snippet"[^>]*>(.*?)</a>', re.DOTALL)


def page_text(markup: str) -> str:
    """Visible text of an HTML document, whitespace collapsed."""
    text = _SCRIPT_RE.sub(" ", markup)
    text = _TAG_RE.sub(" ", text)
    return _SPACE_RE.sub(" ", html.unescape(text)).strip()


def page_title(markup: str) -> str:
    match = _TITLE_RE.search(markup)
    return html.unescape(match.group(1)).strip() if match else "No title"


def _normalize_url(url: str) -> str:
    if not url.startswith(("http://", "https://")):
        url = "https://" + url
    return url


def _num_results(args: dict[str, Any]) -> int:
    try:
        n = int(args.get("numResults") or 5)
    except (TypeError, ValueError):
        n = 5
    return max(1, min(n, 10))


class WebAgent(Agent):
    agent_type = "web"

    def __init__(self, http: httpx.AsyncClient, data_dir: Path):
        self.http = http
        self.data_dir = data_dir
        self.monitors_file = data_dir / "monitors.json"

    async def _fetch(self, url: str) -> str:
        try:
            response = await self.http.get(
                url,
                headers={"User-Agent": BROWSER_UA, "Accept": "text/html,application/xhtml+xml,*/*;q=0.8"},
                follow_redirects=True,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ToolError(f"Failed to fetch {url}: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ToolError(f"Failed to fetch {url}: {e}") from e
        return response.text

    # =========================================================================
    # Search
    # =========================================================================

    async def web_search(self, args: dict[str, Any]) -> dict:
        query = require_string(args, "query")
        limit = _num_results(args)

        results = []
        try:
            response = await self.http.get(
                INSTANT_ANSWER_URL,
                params={"q": query, "format": "json", "no_html": "1"},
                headers={"User-Agent": "AgentRelay/0.3"},
            )
            response.raise_for_status()
            data = response.json()
            if data.get("Abstract"):
                results.append({
                    "title": data.get("Heading") or "Result",
                    "url": data.get("AbstractURL", ""),
                    "snippet": data["Abstract"],
                })
            for topic in data.get("RelatedTopics", []):
                if len(results) >= limit:
                    break
                if topic.get("Text") and topic.get("FirstURL"):
                    results.append({
                        "title": topic["Text"].split(" - ")[0],
                        "url": topic["FirstURL"],
                        "snippet": topic["Text"],
                    })
        except (httpx.HTTPError, ValueError) as e:
            log.warning(f"Instant answer search failed for {query!r}: {e}")

        if results:
            return {"query": query, "results": results[:limit], "totalResults": len(results)}
        return await self._search_html(query, limit)

    async def _search_html(self, query: str, limit: int) -> dict:
        try:
            response = await self.http.post(
                HTML_SEARCH_URL, data={"q": query}, headers={"User-Agent": BROWSER_UA},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ToolError(f"Search failed: {e}") from e

        links = _RESULT_RE.findall(response.text)
        snippets = [page_text(s) for s in _SNIPPET_RE.findall(response.text)]
        results = [
            {
                "title": page_text(title) or "Result",
                "url": url,
                "snippet": snippets[i] if i < len(snippets) else "",
            }
            for i, (url, title) in enumerate(links[:limit])
        ]
        return {
            "query": query,
            "results": results,
            "totalResults": len(results),
            "note": "Results from fallback search",
        }

    # =========================================================================
    # Pages
    # =========================================================================

    async def web_scrape(self, args: dict[str, Any]) -> dict:
        url = _normalize_url(require_string(args, "url"))
        markup = await self._fetch(url)
        content = page_text(markup)
        result = {
            "url": url,
            "title": page_title(markup),
            "content": content[:MAX_CONTENT_CHARS],
            "truncated": len(content) > MAX_CONTENT_CHARS,
        }
        if args.get("selector"):
            result["note"] = "CSS selectors are not applied; showing the whole page text"
        return result

    async def web_screenshot(self, args: dict[str, Any]) -> dict:
        url = _normalize_url(require_string(args, "url"))
        full_page = bool(args.get("fullPage"))
        out_dir = self.data_dir / "screenshots"
        out_dir.mkdir(parents=True, exist_ok=True)
        path = out_dir / f"{hashlib.sha256(url.encode()).hexdigest()[:16]}.png"

        try:
            from playwright.async_api import async_playwright
        except ImportError as e:
            raise ToolError(
                "Screenshots need Playwright. Run: pip install 'agentrelay[browser]' "
                "&& python -m playwright install chromium"
            ) from e

        async with async_playwright() as p:
            browser = await p.chromium.launch(
                headless=True,
                args=["--no-sandbox", "--disable-dev-shm-usage", "--disable-gpu"],
            )
            try:
                page = await browser.new_page(user_agent=BROWSER_UA, viewport={"width": 1280, "height": 900})
                await page.goto(url, timeout=30000, wait_until="domcontentloaded")
                await page.screenshot(path=str(path), full_page=full_page)
                title = await page.title()
            except Exception as e:
                raise ToolError(f"Screenshot of {url} failed: {e}") from e
            finally:
                await browser.close()

        return {"url": url, "title": title, "path": str(path), "fullPage": full_page}

    async def web_fill_form(self, args: dict[str, Any]) -> dict:
        raise ToolError("Filling web forms is not supported")

    async def web_monitor(self, args: dict[str, Any]) -> dict:
        url = _normalize_url(require_string(args, "url"))
        markup = await self._fetch(url)
        digest = hashlib.sha256(markup.encode()).hexdigest()[:16]

        monitors = load_json(self.monitors_file, {})
        previous = monitors.get(url)
        monitors[url] = {"hash": digest, "checkedAt": datetime.now(timezone.utc).isoformat()}
        save_json(self.monitors_file, monitors)

        return {
            "url": url,
            "contentHash": digest,
            "previousHash": previous["hash"] if previous else None,
            "changed": None if previous is None else previous["hash"] != digest,
            "contentPreview": page_text(markup)[:200],
        }
