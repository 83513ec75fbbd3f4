import os
from typing import Any, Callable
from urllib.parse import urlparse
from playwright.async_api import async_playwright, Page, Browser

from models import FileAttachment

# Builds a File from base64 and assigns it to the input, like a user picking it
_INJECT_FILE_JS = """
([selector, name, type, b64]) => {
    const input = document.querySelector(selector);
    if (!input) return false;
    const bytes = Uint8Array.from(atob(b64), c => c.charCodeAt(0));
    const file = new File([bytes], name, { type });
    const transfer = new DataTransfer();
    transfer.items.add(file);
    input.files = transfer.files;
    return input.files.length === 1;
}
"""

# Some portal radios only register when checked programmatically with events
_FORCE_CHECK_JS = """
(selector) => {
    const el = document.querySelector(selector);
    if (!el) return false;
    el.checked = true;
    el.dispatchEvent(new Event('change', { bubbles: true }));
    el.dispatchEvent(new Event('click', { bubbles: true }));
    return el.checked;
}
"""


class BrowserController:
    def __init__(self):
        self.browser: Browser | None = None
        self.context = None
        self.page: Page | None = None
        self.playwright = None

    async def start(self, url: str, headless: bool = False) -> None:
        """Launch browser and navigate to URL."""
        self.playwright = await async_playwright().start()

        launch_kwargs = {"headless": headless}
        context_kwargs = {"viewport": {"width": 1280, "height": 900}, "locale": "nl-NL"}

        proxy_url = os.environ.get("HTTPS_PROXY") or os.environ.get("https_proxy")
        if proxy_url:
            parsed = urlparse(proxy_url)
            proxy = {"server": f"{parsed.scheme}://{parsed.hostname}:{parsed.port}"}
            if parsed.username:
                proxy["username"] = parsed.username
                proxy["password"] = parsed.password or ""
            launch_kwargs["proxy"] = proxy

        self.browser = await self.playwright.chromium.launch(**launch_kwargs)
        self.context = await self.browser.new_context(**context_kwargs)
        self.page = await self.context.new_page()
        await self.page.goto(url)

    async def stop(self) -> None:
        """Close browser."""
        if self.browser:
            await self.browser.close()
        if self.playwright:
            await self.playwright.stop()

    def on(self, event: str, callback: Callable[[], Any]) -> None:
        """Subscribe to a page event ('load', 'domcontentloaded')."""
        self.page.on(event, lambda _page: callback())

    async def get_html(self) -> str:
        """Get page HTML."""
        return await self.page.content()

    async def get_url(self) -> str:
        """Get current URL."""
        return self.page.url

    async def query(self, selector: str) -> bool:
        """True if an element matching selector exists right now."""
        try:
            return await self.page.query_selector(selector) is not None
        except Exception:
            return False

    async def click(self, selector: str) -> bool:
        """Click element by selector. Returns success."""
        try:
            await self.page.click(selector, timeout=2000)
            return True
        except Exception:
            return False

    async def fill(self, selector: str, value: str) -> bool:
        """Replace the field's value, then fire change and blur for the portal's validators."""
        try:
            await self.page.fill(selector, value, timeout=2000)
            await self.page.dispatch_event(selector, "change")
            await self.page.locator(selector).first.blur()
            return True
        except Exception:
            return False

    async def force_check(self, selector: str) -> bool:
        try:
            return bool(await self.page.evaluate(_FORCE_CHECK_JS, selector))
        except Exception:
            return False

    async def inject_file(self, selector: str, attachment: FileAttachment) -> bool:
        """Place the attachment in a native file input."""
        try:
            return bool(await self.page.evaluate(
                _INJECT_FILE_JS,
                [selector, attachment.name, attachment.type, attachment.base64_data],
            ))
        except Exception:
            return False

    async def dispatch_event(self, selector: str, event: str) -> bool:
        try:
            await self.page.dispatch_event(selector, event)
            return True
        except Exception:
            return False

    async def scroll_into_view(self, selector: str) -> None:
        try:
            await self.page.locator(selector).first.scroll_into_view_if_needed(timeout=2000)
        except Exception:
            pass

    async def scroll_to_bottom(self) -> None:
        """Scroll to page bottom."""
        await self.page.evaluate("window.scrollTo(0, document.body.scrollHeight)")
