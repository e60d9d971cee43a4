"""Sellers Service models package."""

from services.sellers_service.models.core import SellerProfile

__all__ = ["SellerProfile"]
