"""Infrastructure layer — database, collaborators, and transaction coordination."""
