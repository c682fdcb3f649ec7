"""Synthetic data generators for demos and tests."""

from mortgage_ledger.generators.mortgage import (
    MortgageTermsGenerator,
    PropertyOwner,
    PropertyOwnerGenerator,
)

__all__ = ["MortgageTermsGenerator", "PropertyOwner", "PropertyOwnerGenerator"]
