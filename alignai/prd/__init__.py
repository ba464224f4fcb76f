"""PRD export from approved consensus."""
