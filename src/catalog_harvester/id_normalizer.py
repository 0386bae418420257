"""
IdNormalizer module for converting platform global ids to local ids
"""
from typing import Optional


class IdNormalizer:
    """Utility class for extracting the local part of a GraphQL global id"""

    DEFAULT_SCHEME = "gid://shopify"

    @staticmethod
    def normalize(global_id: Optional[str]) -> str:
        """
        Return the substring after the final '/' of a global id

        Example: 'gid://shopify/Product/123' -> '123'
        """
        if not global_id:
            return ''
        return global_id[global_id.rfind('/') + 1:]

    @staticmethod
    def to_global_id(resource_type: str, local_id: str,
                     scheme: str = DEFAULT_SCHEME) -> str:
        """Build a global id for query interpolation, leaving existing ones untouched"""
        local_id = str(local_id)
        if '/' in local_id:
            return local_id
        return f"{scheme}/{resource_type}/{local_id}"
