"""Mortgage terms and portfolio owner generators."""

from dataclasses import dataclass, replace
from datetime import date, timedelta
from decimal import Decimal

from mortgage_ledger.generators.base import BaseGenerator
from mortgage_ledger.models import Mortgage, MortgageTerms, MortgageType, ProductType
from mortgage_ledger.models.mortgage import add_months


@dataclass
class PropertyOwner:
    """A user and the property they own."""

    user_id: str
    property_id: str
    owner_name: str
    address: str


class PropertyOwnerGenerator(BaseGenerator):
    """Generate user/property pairs for the ownership directory."""

    def generate(self) -> PropertyOwner:
        """Generate a property owner.

        Returns
        -------
        PropertyOwner
            Generated user and property ids with display details.
        """
        return PropertyOwner(
            user_id=self.fake.uuid4(),
            property_id=self.fake.uuid4(),
            owner_name=self.fake.name(),
            address=f"{self.fake.street_address()}, {self.fake.city()} {self.fake.postcode()}",
        )


class MortgageTermsGenerator(BaseGenerator):
    """Generate valid UK residential mortgage terms."""

    LENDERS = [
        "Nationwide Building Society",
        "Lloyds Bank",
        "Halifax",
        "Barclays",
        "NatWest",
        "Santander UK",
        "HSBC UK",
        "Coventry Building Society",
        "Virgin Money",
        "Yorkshire Building Society",
    ]

    # Annual rate ranges (percent) by product
    RATE_RANGES = {
        ProductType.FIXED: (3.8, 5.2),
        ProductType.VARIABLE: (4.5, 6.5),
        ProductType.TRACKER: (4.2, 5.8),
        ProductType.OFFSET: (4.4, 5.9),
        ProductType.STANDARD_VARIABLE: (6.5, 8.0),
    }

    PRODUCT_WEIGHTS = {
        ProductType.FIXED: 0.6,
        ProductType.TRACKER: 0.15,
        ProductType.VARIABLE: 0.1,
        ProductType.STANDARD_VARIABLE: 0.1,
        ProductType.OFFSET: 0.05,
    }

    TERM_YEARS = [15, 20, 25, 25, 25, 30, 35]

    def generate(self, start_date: date | None = None) -> MortgageTerms:
        """Generate mortgage terms.

        Parameters
        ----------
        start_date : date | None
            Completion date; defaults to a random date in the last five years.

        Returns
        -------
        MortgageTerms
            Validated terms ready for ``MortgageLedger.create``.
        """
        product_type = self.rng.choices(
            list(self.PRODUCT_WEIGHTS),
            weights=list(self.PRODUCT_WEIGHTS.values()),
        )[0]
        low, high = self.RATE_RANGES[product_type]

        if start_date is None:
            start_date = date.today() - timedelta(days=self.rng.randint(30, 365 * 5))

        return MortgageTerms(
            lender=self.rng.choice(self.LENDERS),
            original_loan_amount=Decimal(self.rng.randint(60, 650) * 1000),
            interest_rate=Decimal(str(round(self.rng.uniform(low, high), 2))),
            term_years=self.rng.choice(self.TERM_YEARS),
            mortgage_type=(
                MortgageType.INTEREST_ONLY if self.rng.random() < 0.08 else MortgageType.REPAYMENT
            ),
            product_type=product_type,
            start_date=start_date,
            notes=self.fake.sentence() if self.rng.random() < 0.1 else None,
        )

    def generate_remortgage(
        self,
        current: MortgageTerms | Mortgage | None = None,
        on: date | None = None,
    ) -> MortgageTerms:
        """Terms for a replacement deal, typically when a fixed period ends.

        With ``current`` given the new loan keeps its mortgage type and
        borrows 70-95% of its original amount.
        """
        if on is None:
            base = current.start_date if current else date.today()
            on = add_months(base, self.rng.choice([24, 36, 60]))
        terms = self.generate(start_date=on)
        if current is not None:
            ratio = Decimal(str(round(self.rng.uniform(0.7, 0.95), 2)))
            amount = Decimal(int(current.original_loan_amount * ratio / 1000) * 1000)
            terms = replace(
                terms,
                original_loan_amount=max(amount, Decimal("1000")),
                mortgage_type=current.mortgage_type,
                notes=None,
            )
        return terms
