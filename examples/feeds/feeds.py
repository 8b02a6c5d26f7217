"""Compare strategies referenced from pollcast.toml."""


def same_latest_entry(previous, current):
    """Unchanged while the newest entry keeps its pubDate."""
    if not previous or not current:
        return not previous and not current
    return previous[0].get("pubDate") == current[0].get("pubDate")
