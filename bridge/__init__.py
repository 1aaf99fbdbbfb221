# Bridge module - Browser automation for services without an API
# Scraping is real (HTTP + HTML parsing); interactions are stubs

from .browser import AutonomousBridge, BrowserConfig, ScrapeResult

__all__ = ["AutonomousBridge", "BrowserConfig", "ScrapeResult"]
