"""
Playwright configuration for the NoCowboys E2E suite.

This module provides browser launch and context settings, artifact
directories and the environment variable summary for running the suite
with the async fixtures in tests/e2e/conftest.py.

Usage:
    E2E_BROWSER=firefox pytest tests/e2e/
    E2E_HEADLESS=false pytest tests/e2e/
    pytest tests/ -m "not live"
"""

import os
from dataclasses import dataclass
from typing import Dict, Optional, Any
from pathlib import Path


# =============================================================================
# Environment Configuration
# =============================================================================

# Base URL of the site under test (live scenarios are skipped without it)
BASE_URL = os.environ.get("E2E_BASE_URL", "")

# Headless mode (set to "false" for debugging)
HEADLESS = os.environ.get("E2E_HEADLESS", "true").lower() == "true"

# Slow motion delay in milliseconds (useful for debugging)
SLOW_MO = int(os.environ.get("E2E_SLOW_MO", "0"))

# Default timeout in milliseconds
DEFAULT_TIMEOUT = int(os.environ.get("E2E_TIMEOUT", "30000"))

# Basic auth in front of the staging site
HTTP_AUTH_USERNAME = os.environ.get("HTTP_AUTH_USERNAME")
HTTP_AUTH_PASSWORD = os.environ.get("HTTP_AUTH_PASSWORD", "")

# Record a trace of every test, kept for failures
RECORD_TRACE = os.environ.get("E2E_RECORD_TRACE", "false").lower() == "true"

# Test results directory
TEST_RESULTS_DIR = Path(os.environ.get("E2E_RESULTS_DIR", "test-results"))

SCREENSHOTS_DIR = TEST_RESULTS_DIR / "screenshots"
TRACES_DIR = TEST_RESULTS_DIR / "traces"


# =============================================================================
# Browser Configuration
# =============================================================================

@dataclass
class BrowserConfig:
    """Configuration for a browser instance."""

    # Browser name: chromium, firefox, webkit
    name: str = "chromium"

    # Browser channel: chrome, msedge
    channel: Optional[str] = None

    headless: bool = HEADLESS
    slow_mo: int = SLOW_MO

    # Dashboard tab rows collapse into a menu on narrower windows
    viewport_width: int = 1920
    viewport_height: int = 1080

    locale: str = "en-NZ"
    timezone_id: str = "Pacific/Auckland"

    # HTTP credentials for basic auth
    http_credentials: Optional[Dict[str, str]] = None

    ignore_https_errors: bool = False

    def to_launch_options(self) -> Dict[str, Any]:
        """Convert to Playwright browser launch options."""
        options = {
            "headless": self.headless,
            "slow_mo": self.slow_mo,
        }
        if self.channel:
            options["channel"] = self.channel
        return options

    def to_context_options(self) -> Dict[str, Any]:
        """Convert to Playwright browser context options."""
        options = {
            "viewport": {
                "width": self.viewport_width,
                "height": self.viewport_height,
            },
            "locale": self.locale,
            "timezone_id": self.timezone_id,
            "ignore_https_errors": self.ignore_https_errors,
        }

        if BASE_URL:
            options["base_url"] = BASE_URL
        if self.http_credentials:
            options["http_credentials"] = self.http_credentials

        return options


def default_http_credentials() -> Optional[Dict[str, str]]:
    """Basic auth credentials from the environment, if configured."""
    if not HTTP_AUTH_USERNAME:
        return None
    return {"username": HTTP_AUTH_USERNAME, "password": HTTP_AUTH_PASSWORD}


# =============================================================================
# Predefined Browser Configurations
# =============================================================================

CHROMIUM_CONFIG = BrowserConfig(name="chromium", http_credentials=default_http_credentials())
FIREFOX_CONFIG = BrowserConfig(name="firefox", http_credentials=default_http_credentials())
WEBKIT_CONFIG = BrowserConfig(name="webkit", http_credentials=default_http_credentials())

# Chrome browser (requires Chrome installed)
CHROME_CONFIG = BrowserConfig(
    name="chromium", channel="chrome", http_credentials=default_http_credentials()
)


# =============================================================================
# Test Configuration
# =============================================================================

@dataclass
class TestConfig:
    """Configuration for test execution."""

    timeout: int = DEFAULT_TIMEOUT

    # Trace recording mode: off or retain-on-failure
    trace_mode: str = "retain-on-failure" if RECORD_TRACE else "off"

    output_dir: Path = TEST_RESULTS_DIR

    def ensure_directories(self) -> None:
        """Ensure output directories exist."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        SCREENSHOTS_DIR.mkdir(parents=True, exist_ok=True)
        TRACES_DIR.mkdir(parents=True, exist_ok=True)


# =============================================================================
# Global Configuration Instance
# =============================================================================

config = TestConfig()


# =============================================================================
# Utility Functions
# =============================================================================

def get_browser_config(browser_name: str) -> BrowserConfig:
    """
    Get browser configuration by name.

    Args:
        browser_name: Name of the browser (chromium, firefox, webkit, chrome)

    Returns:
        BrowserConfig instance for the specified browser
    """
    configs = {
        "chromium": CHROMIUM_CONFIG,
        "firefox": FIREFOX_CONFIG,
        "webkit": WEBKIT_CONFIG,
        "chrome": CHROME_CONFIG,
    }
    return configs.get(browser_name.lower(), CHROMIUM_CONFIG)


def _safe_name(test_name: str) -> str:
    return "".join(c if c.isalnum() or c in "-_" else "_" for c in test_name)


def get_screenshot_path(test_name: str) -> Path:
    """Path where the failure screenshot of ``test_name`` is saved."""
    return SCREENSHOTS_DIR / f"{_safe_name(test_name)}.png"


def get_trace_path(test_name: str) -> Path:
    """Path where the trace of ``test_name`` is saved."""
    return TRACES_DIR / f"{_safe_name(test_name)}.zip"


# =============================================================================
# Environment Variable Summary
# =============================================================================

ENV_VARS = """
Environment Variables:
----------------------
E2E_BASE_URL          - Base URL of the site under test (live tests skip without it)
E2E_BROWSER           - chromium, firefox, webkit or chrome (default: chromium)
E2E_HEADLESS          - Run in headless mode (default: true)
E2E_SLOW_MO           - Slow motion delay in ms (default: 0)
E2E_TIMEOUT           - Default Playwright timeout in ms (default: 30000)
E2E_RECORD_TRACE      - Save a trace of failed tests (default: false)
E2E_RESULTS_DIR       - Test results directory (default: test-results)
E2E_TIMEOUT_*         - Helper timeouts: LISTING, LINK, NEW_PAGE, NAVIGATION,
                        FALLBACK, OPTIONS, ENABLE, POLL_INTERVAL (ms)
E2E_CONFIG_FILE       - TOML file used instead of the environment
HTTP_AUTH_USERNAME    - Basic auth user of the staging site
HTTP_AUTH_PASSWORD    - Basic auth password of the staging site
CUSTOMER_LOGIN_TEST_LOGIN / _PASSWORD / _FULL_NAME
                      - Existing customer account for login scenarios
BUSINESS_LOGIN_TEST_LOGIN / _PASSWORD / _BUSINESS_NAME
                      - Existing business account for login scenarios
LOG_LEVEL             - Log level (default: INFO)
LOG_FILE              - Also log to this file
"""


if __name__ == "__main__":
    # Print configuration when run directly
    print("Playwright Configuration for the NoCowboys E2E Suite")
    print("=" * 50)
    print(f"Base URL: {BASE_URL or '(not set)'}")
    print(f"Headless: {HEADLESS}")
    print(f"Slow Motion: {SLOW_MO}ms")
    print(f"Default Timeout: {DEFAULT_TIMEOUT}ms")
    print(f"HTTP Auth: {'yes' if HTTP_AUTH_USERNAME else 'no'}")
    print(f"Record Trace: {RECORD_TRACE}")
    print(f"Results Directory: {TEST_RESULTS_DIR}")
    print("\n" + ENV_VARS)
