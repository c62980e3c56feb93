"""User agent pool for identity rotation between navigation retries.

The pool is static configuration: it is built once and handed to the
components that rotate identity, never mutated process-wide.
"""

import logging
import random
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)


DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36 Edg/131.0.0.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:133.0) Gecko/20100101 Firefox/133.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/18.1 Safari/605.1.15",
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1",
]


@dataclass(frozen=True)
class UserAgentInfo:
    """User agent with metadata."""
    user_agent: str
    browser: str  # 'chrome', 'firefox', 'safari', 'edge'
    version: str
    platform: str  # 'windows', 'mac', 'linux', 'ios'


class UserAgentPool:
    """
    Fixed pool of realistic user agents.

    Selection is uniformly random; ``get_random(exclude=...)`` avoids handing
    back the identity that was just throttled when the pool allows it.
    """

    def __init__(self, user_agents: Optional[Sequence[str]] = None, size: int = 0):
        """
        Initialize user agent pool.

        Args:
            user_agents: User agent strings (defaults to the built-in list)
            size: Keep only the first ``size`` entries (0 keeps all)
        """
        agents = list(user_agents) if user_agents is not None else list(DEFAULT_USER_AGENTS)
        if size > 0:
            agents = agents[:size]
        if not agents:
            raise ValueError("User agent pool cannot be empty")

        self._user_agents: List[UserAgentInfo] = [self._parse_user_agent(ua) for ua in agents]
        logger.debug(f"User agent pool ready with {len(self._user_agents)} agents")

    def __len__(self) -> int:
        return len(self._user_agents)

    @property
    def user_agents(self) -> List[str]:
        return [ua.user_agent for ua in self._user_agents]

    @staticmethod
    def _parse_user_agent(ua_string: str) -> UserAgentInfo:
        """Parse user agent string into structured info."""
        if "Edg/" in ua_string or "Edge/" in ua_string:
            browser = "edge"
        elif "Chrome" in ua_string:
            browser = "chrome"
        elif "Firefox" in ua_string:
            browser = "firefox"
        elif "Safari" in ua_string:
            browser = "safari"
        else:
            browser = "chrome"

        if "iPhone" in ua_string:
            platform = "ios"
        elif "Windows" in ua_string:
            platform = "windows"
        elif "Macintosh" in ua_string:
            platform = "mac"
        elif "Linux" in ua_string:
            platform = "linux"
        else:
            platform = "windows"

        version_match = re.search(r'(?:Edg|Chrome|Firefox|Version)/(\d+)', ua_string)
        version = version_match.group(1) if version_match else ""

        return UserAgentInfo(
            user_agent=ua_string,
            browser=browser,
            version=version,
            platform=platform,
        )

    def get_random(self, exclude: Optional[str] = None) -> str:
        """
        Get a random user agent from the pool.

        Args:
            exclude: User agent to avoid (e.g. the one currently throttled)

        Returns:
            User agent string
        """
        available = self._user_agents
        if exclude is not None:
            available = [ua for ua in self._user_agents if ua.user_agent != exclude] or self._user_agents

        return random.choice(available).user_agent

    def get_stats(self) -> Dict[str, Dict[str, int]]:
        """Get pool composition."""
        browsers: Dict[str, int] = {}
        platforms: Dict[str, int] = {}
        for ua in self._user_agents:
            browsers[ua.browser] = browsers.get(ua.browser, 0) + 1
            platforms[ua.platform] = platforms.get(ua.platform, 0) + 1
        return {"browser_distribution": browsers, "platform_distribution": platforms}
