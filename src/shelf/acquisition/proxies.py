"""
Passthrough proxy routes.

Each route wraps a canonical URL in a third-party proxy request that returns
the target resource verbatim. Routes are tried in list order.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote

from shelf.config import DEFAULT_PROXY_TEMPLATES, split_proxy_templates
from shelf.exceptions import ConfigurationError

# Characters encodeURIComponent leaves alone besides alphanumerics and "-_.~"
_URI_COMPONENT_SAFE = "!*'()"


def encode_uri_component(value: str) -> str:
    """Percent-encode a whole URL so it can travel as one query value."""
    return quote(value, safe=_URI_COMPONENT_SAFE)


@dataclass(frozen=True)
class ProxyRoute:
    """A named proxy URL template with a {url} placeholder."""

    name: str
    template: str

    def wrap(self, url: str) -> str:
        """Build the proxy request URL for a canonical URL."""
        return self.template.replace("{url}", encode_uri_component(url))


def parse_proxy_templates(entries: list[str]) -> list[ProxyRoute]:
    """Parse "name=template" entries into routes, preserving order.

    Raises:
        ConfigurationError: If an entry is malformed or a name repeats.
    """
    try:
        pairs = split_proxy_templates(entries)
    except ValueError as e:
        raise ConfigurationError(
            "Invalid proxy template",
            context={"error": str(e), "expected": "name=https://proxy/?{url}"},
        ) from e
    return [ProxyRoute(name=name, template=template) for name, template in pairs]


DEFAULT_PROXIES: list[ProxyRoute] = parse_proxy_templates(DEFAULT_PROXY_TEMPLATES)
