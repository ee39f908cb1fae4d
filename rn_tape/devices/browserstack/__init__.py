"""BrowserStack App Automate device driver."""

from rn_tape.devices.browserstack.config import BrowserStackConfig
from rn_tape.devices.browserstack.driver import BrowserStackDriver

__all__ = ["BrowserStackConfig", "BrowserStackDriver"]
