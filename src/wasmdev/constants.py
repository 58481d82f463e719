"""Global constants for wasmdev."""

import tempfile
from pathlib import Path

# Server defaults

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8420

# Single-instance record (one pid per machine)
PID_FILE = Path(tempfile.gettempdir()) / "wasmdev_server.pid"
PID_FILE_ENV = "WASMDEV_PID_FILE"

# Seconds to wait for a killed instance to exit
KILL_TIMEOUT = 5.0

# URL/Routing
ASSETS_PREFIX = "/assets/"
DEFAULT_ASSETS_DIR = Path("assets")
RELOAD_PATHS = ("/reload", "/reload-check")
RELOAD_CHECK_PATH = "/reload-check"
RELOAD_NEEDED_HEADER = "X-Reload-Needed"
NO_CACHE = "no-cache, no-store, must-revalidate"

# Reload poll bodies
NOT_WATCHING = "not-watching"
RELOAD = "reload"
NO_RELOAD = "no-reload"

# wasm-bindgen names its module `<crate>_bg.wasm`
GENERATED_WASM_SUFFIX = "_bg.wasm"
# Extensions retried by bare file name when the request path misses
NAME_FALLBACK_EXTENSIONS = ("js", "css", "json", "wasm")

# Plugins
PLUGIN_REGISTRY = Path.home() / ".wasmdev" / "plugins.json"
PLUGIN_REGISTRY_ENV = "WASMDEV_PLUGIN_REGISTRY"
