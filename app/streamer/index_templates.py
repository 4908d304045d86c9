"""
Index mapping for the saves and discover-tag indices.
"""

from typing import Any, Dict


def get_dynamic_templates() -> list:
    """Map every otherwise-unmapped string to full-text plus an exact-match sub-field."""
    return [
        {
            "strings_as_text_and_keyword": {
                "match_mapping_type": "string",
                "mapping": {"type": "text", "fields": {"keyword": {"type": "keyword", "ignore_above": 256}}},
            }
        }
    ]


def get_index_mapping() -> Dict[str, Any]:
    """
    Get the full index body used when creating an index.

    Returns:
        Settings, dynamic template and explicit field typings
    """
    return {
        "settings": {"index": {"number_of_shards": 1}},
        "mappings": {
            "dynamic": True,
            "dynamic_templates": get_dynamic_templates(),
            "properties": {
                "username": {"type": "keyword"},
                "url": {"type": "keyword"},
                "title": {"type": "text"},
                "description": {"type": "text"},
                "publisher": {"type": "keyword"},
                "image": {"type": "keyword"},
                "imageKey": {"type": "keyword"},
                "thirdPartyImage": {"type": "keyword"},
                "comments": {"type": "text"},
                "enrichments": {"type": "text", "fields": {"keyword": {"type": "keyword", "ignore_above": 256}}},
                "isArchived": {"type": "boolean"},
                "isBroken": {"type": "boolean"},
                "createdAt": {"type": "date"},
                "updatedAt": {"type": "date"},
                "entityType": {"type": "keyword"},
                "id": {"type": "keyword"},
                "pk": {"type": "keyword"},
                "sk": {"type": "keyword"},
            },
        },
    }
