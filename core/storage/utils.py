"""
Storage utilities shared by the Qdrant index.
"""

import hashlib


def entity_id_to_qdrant_id(entity_id: str) -> int:
    """
    Convert an entity id to a Qdrant point id.

    Qdrant only accepts unsigned integers or UUIDs as point ids, so graph
    entity ids are hashed with SHA256 and the first 8 bytes are used.

    Example:
        >>> entity_id_to_qdrant_id("src/auth.ts::login") == entity_id_to_qdrant_id("src/auth.ts::login")
        True
    """
    hash_digest = hashlib.sha256(entity_id.encode('utf-8')).digest()
    return int.from_bytes(hash_digest[:8], byteorder='big', signed=False)
