"""Same feeds as pollcast.toml, configured from Python."""

from pollcast import BroadcastServer, RssLatestItem, first_item_field

server = BroadcastServer(default_interval=2000, check_heartbeat=True, stats=True)
server.sources([
    {
        "type": "rss-example",
        "url": "http://localhost:9000/rss.xml",
        "xml": True,
        "compare": RssLatestItem(),
    },
    {
        "type": "json-example",
        "url": "http://localhost:9000/json.json",
        "compare": first_item_field("pubDate"),
    },
])

if __name__ == "__main__":
    server.run(8080)
