from __future__ import annotations

import nacl.pwhash


def hash_password(password: str) -> str:
    """Argon2id hash in libsodium's self-describing string format."""
    return nacl.pwhash.str(password.encode("utf-8")).decode("ascii")
