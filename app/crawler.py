from collections.abc import Callable

# Any callable taking a User-Agent and answering "is this a link-preview bot?"
CrawlerDetector = Callable[[str], bool]

# Lark (Feishu) fetches links for its preview cards with this Chrome build.
# An end user on the same build gets the preview page instead of a redirect,
# which only costs a hit count.
LARK_BOT_SIGNATURE = "Chrome/91.0.4450.0"


def is_preview_crawler(user_agent: str) -> bool:
    return LARK_BOT_SIGNATURE in user_agent
