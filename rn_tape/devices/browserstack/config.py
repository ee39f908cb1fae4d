"""Configuration for the BrowserStack device driver."""

from pydantic import BaseModel, SecretStr


class BrowserStackConfig(BaseModel):
    """Configuration for the BrowserStack device driver."""

    user: str
    access_key: SecretStr
    api_base_url: str = "https://api-cloud.browserstack.com"
    hub_url: str = "https://hub-cloud.browserstack.com/wd/hub"
    # Seconds between keep-alive pings, well under the farm's idle maximum
    ping_interval: float = 120
