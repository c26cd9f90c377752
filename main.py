from __future__ import annotations

from podcastsearch.app.api.app import create_app

app = create_app()
