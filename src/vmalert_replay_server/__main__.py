"""Module entrypoint.

Allows:
    python -m vmalert_replay_server
"""

from __future__ import annotations

from vmalert_replay_server.server.replay_server import main

if __name__ == "__main__":
    main()
