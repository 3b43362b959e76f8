from .debounce import Debouncer
from .filters import should_ignore
from .watcher import FileWatcher, WatchEvent, watched_roots

__all__ = ["Debouncer", "should_ignore", "FileWatcher", "WatchEvent", "watched_roots"]
