"""Names of registration secrets."""

import hashlib

_MAX_NAME_LENGTH = 63


def secret_name(client_id: str, client_random: str) -> str:
    """Return the secret name derived from a client id and random value."""
    digest = hashlib.sha256()
    digest.update(client_id.encode())
    digest.update(client_random.encode())
    return ("c-" + digest.hexdigest())[:_MAX_NAME_LENGTH]