"""The web front of the atelier: pages, the session websocket and its fragments."""
