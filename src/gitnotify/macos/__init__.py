"""macOS integration: the login item that keeps `gitnotify watch` running."""
