"""airank collector: token-usage ingestion and leaderboard service."""
