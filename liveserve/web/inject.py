"""
Browser side of live reload.

The client opens a WebSocket to the reload port on the page's own host,
reloads the page on the literal message "reload", and after a disconnect
retries with exponential backoff (base * 2**attempt, capped) until the
attempt ceiling is reached.
"""

_CLIENT_TEMPLATE = """
<script>
(() => {
  let reconnectAttempts = 0;
  const maxReconnectAttempts = %(attempts)d;
  const baseDelay = %(base_ms)d;
  const maxDelay = %(max_ms)d;

  function connect() {
    const ws = new WebSocket('%(protocol)s://' + window.location.hostname + ':%(port)d');

    ws.onopen = () => {
      console.log('[liveserve] Connected to live-reload server');
      reconnectAttempts = 0;
    };

    ws.onmessage = (event) => {
      if (event.data === 'reload') {
        console.log('[liveserve] File changed, reloading...');
        window.location.reload();
      }
    };

    ws.onclose = () => {
      if (reconnectAttempts < maxReconnectAttempts) {
        const delay = Math.min(baseDelay * Math.pow(2, reconnectAttempts), maxDelay);
        console.log(`[liveserve] Disconnected, reconnecting in ${delay / 1000}s... (attempt ${reconnectAttempts + 1}/${maxReconnectAttempts})`);
        setTimeout(connect, delay);
        reconnectAttempts++;
      } else {
        console.log('[liveserve] Max reconnection attempts reached. Please refresh the page manually.');
      }
    };

    ws.onerror = () => ws.close();
  }

  connect();
})();
</script>"""


def build_reload_script(port: int, secure: bool = False, attempts: int = 10,
                        base_ms: int = 1000, max_ms: int = 30000) -> str:
    return _CLIENT_TEMPLATE % {
        "protocol": "wss" if secure else "ws",
        "port": port,
        "attempts": attempts,
        "base_ms": base_ms,
        "max_ms": max_ms,
    }


def inject_reload_script(document: str, script: str) -> str:
    """Insert script before the last </body>, else before the last </html>, else append it."""
    lowered = document.lower()
    for tag in ("</body>", "</html>"):
        index = lowered.rfind(tag)
        if index != -1:
            return document[:index] + script + document[index:]
    return document + script
