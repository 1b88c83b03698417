"""YatraSathi back-office console service."""
