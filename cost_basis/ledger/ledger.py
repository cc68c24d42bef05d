"""
Cost Basis Ledger

Records financial activity as an append-only log of cost-basis lots:
1. Deposits and income create root lots
2. Purchases, transfers and exchanges carve amounts out of existing lots
   (proportionally removing their cost basis) into new child lots
3. Taxable disposals record zero-balance TaxableGains lots

Lots are addressed by their dotted ids ("1", "1.2", "1.2.1"). Every
operation looks up the lots and prices it needs before touching any lot,
so a failing operation leaves the lot it targeted unchanged. Multi-lot
batches are not transactional across their legs.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from cost_basis.ledger.config import (
    BATCH_ROUNDING_PLACES,
    FULL_TRANSFER_TOLERANCE,
    MERGE_PRICE_ROUNDING_PLACES,
    SPEND_GAINS_SUFFIX,
)
from cost_basis.ledger.errors import (
    CurrencyMismatch,
    IdentityMismatch,
    InsufficientBalance,
    InvalidAmount,
    InvalidSameDayExchange,
    LotNotFound,
    OverCommitted,
    UnderCommitted,
)
from cost_basis.ledger.lot import Lot, LotType, Number, TaxableGainsDetails, round_places, to_decimal
from cost_basis.ledger.prices import DateKey, HistoricalPriceTable, to_date
from cost_basis.utils.logging_config import lot_context, setup_logger

logger = setup_logger(__name__)


@dataclass
class Summary:
    """Balance and basis of one currency within one account."""
    balance: Decimal = Decimal(0)
    basis: Decimal = Decimal(0)
    lots: List[Lot] = field(default_factory=list)

    @property
    def price_per_unit(self) -> Optional[Decimal]:
        if self.balance == 0:
            return None
        return self.basis / self.balance


def _non_negative(what: str, value: Number) -> Decimal:
    value = to_decimal(value)
    if value < 0:
        raise InvalidAmount(f"{what} must not be negative, got {value}")
    return value


def _positive(what: str, value: Number) -> Decimal:
    value = to_decimal(value)
    if value <= 0:
        raise InvalidAmount(f"{what} must be positive, got {value}")
    return value


class Ledger:
    """
    Lets you record financial activity, tracking cost basis lots.

    Each ledger owns its own id sequence, so independent ledgers coexist.
    """

    def __init__(
        self,
        reporting_currency: str,
        historical_prices: Union[HistoricalPriceTable, Mapping, None] = None
    ):
        self.reporting_currency = reporting_currency

        if isinstance(historical_prices, HistoricalPriceTable):
            if historical_prices.reporting_currency != reporting_currency:
                raise CurrencyMismatch(
                    f"Price table is in {historical_prices.reporting_currency}, "
                    f"ledger reports in {reporting_currency}"
                )
            self.prices = historical_prices
        else:
            self.prices = HistoricalPriceTable(reporting_currency, historical_prices)

        self._lots: List[Lot] = []
        self._lots_by_name: Dict[str, Lot] = {}
        self._sequence = 0

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def deposit_new_money(self, when: DateKey, account: str, amount: Number, cost_basis: Number) -> Lot:
        """
        Record new investment. Transfer or deposit fees may make cost_basis
        larger than the amount that actually arrived.
        """
        lot = Lot(
            lot_id=self._name_lot(),
            lot_type=LotType.ASSET,
            original_purchase_date=to_date(when),
            account=account,
            currency=self.reporting_currency,
            original_amount=_non_negative("Deposit amount", amount),
            original_cost_basis=_non_negative("Deposit cost basis", cost_basis),
        )
        self._append(lot)
        logger.debug(f"Deposit: {lot}", extra=lot_context(lot.lot_id, lot.account))
        return lot

    def income(
        self,
        when: DateKey,
        account: str,
        currency: str,
        amount: Number,
        cost: Number,
        note: str = ""
    ) -> Lot:
        """Record income (e.g. a fork or staking reward) as its own root lot."""
        lot = Lot(
            lot_id=self._name_lot(),
            lot_type=LotType.ASSET_INCOME,
            original_purchase_date=to_date(when),
            account=account,
            currency=currency,
            original_amount=_non_negative("Income amount", amount),
            original_cost_basis=_non_negative("Income cost", cost),
            note=note,
        )
        self._append(lot)
        logger.debug(f"Income: {lot} ({note})", extra=lot_context(lot.lot_id, lot.account))
        return lot

    def purchase(
        self,
        when: DateKey,
        from_lot_name: str,
        to_account: str,
        currency: str,
        amount: Number,
        cost: Number
    ) -> Lot:
        """Spend reporting currency from a funding lot to buy `amount` of `currency`."""
        amount = _non_negative("Purchase amount", amount)
        lot = self.find_lot_by_name(from_lot_name, self.reporting_currency)

        cost_basis = lot.remove(self.reporting_currency, cost)

        new_lot = Lot.child_of(lot, LotType.ASSET, to_date(when), to_account, currency, amount, cost_basis)
        self._append(new_lot)
        logger.debug(f"Purchase: {new_lot}", extra=lot_context(lot.lot_id, lot.account))
        return new_lot

    def fee(
        self,
        when: DateKey,
        from_lot_name: str,
        currency: str,
        amount: Number,
        apply_cost_basis_to_lot_name: str,
        note: str = ""
    ) -> Decimal:
        """
        Pay a fee out of one lot and fold its value into another lot's basis.

        The fee is modelled as a sale for the reporting currency (recording
        any gains), and the proceeds are added to the cost basis of the lot
        the fee was paid on behalf of.

        Raises:
            IdentityMismatch: The target is a TaxableGains lot, whose basis
                stays zero. Checked before anything is spent.
        """
        fee_applied_to_lot = self._find_lot_by_name(apply_cost_basis_to_lot_name)
        if fee_applied_to_lot.lot_type == LotType.TAXABLE_GAINS:
            raise IdentityMismatch(
                f"Fee cost basis cannot be applied to a {LotType.TAXABLE_GAINS.value} lot\n{fee_applied_to_lot}"
            )

        value = self.spend(
            when, fee_applied_to_lot.account, from_lot_name, currency, amount, f"fee applied: {note}"
        )
        fee_applied_to_lot.add_cost_basis(value)
        logger.debug(
            f"Fee of {value} applied", extra=lot_context(fee_applied_to_lot.lot_id, fee_applied_to_lot.account)
        )
        return value

    def transfer(
        self,
        when: DateKey,
        from_lot_name: str,
        currency: str,
        amount_removed: Number,
        fee_paid_from_amount: Number,
        to_account: str
    ) -> Lot:
        """
        Move part of a lot to another account (minus the given fee).

        The new lot keeps the source's original purchase date and its
        proportional cost basis. A non-zero fee is spent out of the new lot
        and its value added back to the new lot's basis.
        """
        amount_removed = _non_negative("Transfer amount", amount_removed)
        fee = _non_negative("Transfer fee", fee_paid_from_amount)
        lot = self.find_lot_by_name(from_lot_name, currency)

        if fee > amount_removed:
            raise InsufficientBalance(
                f"Transfer fee {fee} exceeds the transferred amount {amount_removed}\n{lot}"
            )
        if fee > 0:
            # fail on a missing price before anything moves
            self.lookup_price(currency, when)

        cost_basis = lot.remove(currency, amount_removed)

        new_lot = Lot.child_of(
            lot, LotType.ASSET, lot.original_purchase_date, to_account, currency, amount_removed, cost_basis
        )
        self._append(new_lot)

        value = self.spend(
            when, lot.account, new_lot.lot_id, currency, fee,
            f"fee for transferring from {lot.account} to {to_account}"
        )
        new_lot.add_cost_basis(value)

        logger.debug(f"Transfer to {to_account}: {new_lot}", extra=lot_context(lot.lot_id, lot.account))
        return new_lot

    def transfer_multiple_lots(
        self,
        when: DateKey,
        from_lot_names: Sequence[str],
        currency: str,
        total_amount_to_move: Number,
        fee_paid_from_amount: Number,
        to_account: str
    ) -> List[Lot]:
        """
        Transfer from several lots, in order, until the total is moved.

        Each lot gives up either its full balance or whatever remains to be
        moved. The fee is spread proportionally to each lot's contribution.
        """
        total = _positive("Total transfer amount", total_amount_to_move)
        fee = _non_negative("Transfer fee", fee_paid_from_amount)

        new_lots = []
        remaining = total
        for name in from_lot_names:
            lot = self.find_lot_by_name(name, currency)
            if remaining <= 0:
                raise OverCommitted(f"There's nothing left to remove from this lot: {lot}")

            leg = min(lot.amount, remaining)
            remaining -= leg

            fee_portion = fee * (leg / total)
            new_lots.append(self.transfer(when, lot.lot_id, currency, leg, fee_portion, to_account))

        if remaining > 0:
            raise UnderCommitted(f"Insufficient funds in the lots. Remaining: {remaining:.9f}")
        if remaining < 0:
            raise OverCommitted(f"Too much funds transferred! Remaining: {remaining:.9f}")

        return new_lots

    def transfer_multiple_lots_fully(
        self,
        when: DateKey,
        from_lot_names: Sequence[str],
        currency: str,
        amount_removed: Number,
        fee_paid_from_amount: Number,
        to_account: str
    ) -> List[Lot]:
        """
        Transfer the entire balance of several lots.

        amount_removed must match the lots' combined balance, which guards
        against naming the wrong lots.
        """
        amount_removed = _positive("Transfer amount", amount_removed)
        fee = _non_negative("Transfer fee", fee_paid_from_amount)

        lots = [self.find_lot_by_name(name, currency) for name in from_lot_names]
        lots_total = sum((lot.amount for lot in lots), Decimal(0))

        difference = lots_total - amount_removed
        if abs(difference) > FULL_TRANSFER_TOLERANCE:
            error = UnderCommitted if difference < 0 else OverCommitted
            raise error(
                f"Amount to remove {amount_removed:.10f} does not match the amount in the lots "
                f"{lots_total:.10f} (diff: {-difference:.20f})"
            )

        new_lots = []
        for lot in lots:
            fee_portion = fee * (lot.amount / amount_removed)
            new_lots.append(self.transfer(when, lot.lot_id, currency, lot.amount, fee_portion, to_account))
        return new_lots

    def exchange_taxable(
        self,
        when: DateKey,
        from_lot_name: str,
        sold_currency: str,
        sold_amount: Number,
        fee_in_sold_currency: Number,
        use_sold_price_for_valuation: bool,
        purchased_currency: str,
        purchased_amount_received: Number
    ) -> Lot:
        """
        Exchange one currency for another as a taxable event.

        The trade is valued in the reporting currency from the daily price
        of either the sold or the purchased currency. The source lot gets two
        children rather than an intermediate "pseudo sale" lot:

                  Starting Lot
                    /     \\
            Purchase Lot   Taxable Gain Lot
        """
        when = to_date(when)
        sold_amount = _non_negative("Sold amount", sold_amount)
        purchased_amount_received = _non_negative("Purchased amount", purchased_amount_received)
        fee_in_sold_currency = _non_negative("Exchange fee", fee_in_sold_currency)

        lot = self.find_lot_by_name(from_lot_name, sold_currency)

        if use_sold_price_for_valuation:
            valuation = self.lookup_price(sold_currency, when) * sold_amount
        else:
            valuation = self.lookup_price(purchased_currency, when) * purchased_amount_received

        sold_cost_basis = lot.remove(sold_currency, sold_amount)

        destination = Lot.child_of(
            lot, LotType.ASSET, when, lot.account, purchased_currency, purchased_amount_received, valuation
        )
        self._append(destination)

        details = TaxableGainsDetails(
            account=lot.account,
            currency=sold_currency,
            original_purchase_date=lot.original_purchase_date,
            cost_basis=sold_cost_basis,
            sale_date=when,
            proceeds=valuation,
            sold_amount=sold_amount,
            note=f"exchanging {sold_currency} for {purchased_currency}",
        )
        gains_lot = Lot.taxable_gains(lot, details, self.reporting_currency)
        self._append(gains_lot)

        if fee_in_sold_currency:
            # informational: the received amount is already net of the fee
            logger.debug(
                f"Exchange fee {fee_in_sold_currency} {sold_currency} not booked separately",
                extra=lot_context(lot.lot_id, lot.account)
            )
        logger.debug(
            f"Taxable exchange: {destination} / gains {details.gains:.6f}",
            extra=lot_context(lot.lot_id, lot.account)
        )
        return destination

    def exchange_taxable_multiple_lots(
        self,
        when: DateKey,
        from_lot_names: Sequence[str],
        sold_currency: str,
        total_amount_to_sell: Number,
        use_sold_price_for_valuation: bool,
        purchased_currency: str,
        total_amount_to_purchase: Number
    ) -> List[Lot]:
        """
        Taxable exchange drawn from several lots, in order.

        The purchased amount is split across legs proportionally to each
        leg's share of the total sale.
        """
        total_sell = _positive("Total amount to sell", total_amount_to_sell)
        total_purchase = _positive("Total amount to purchase", total_amount_to_purchase)

        remaining_to_sell = total_sell
        remaining_to_purchase = total_purchase
        destinations = []
        for name in from_lot_names:
            lot = self.find_lot_by_name(name, sold_currency)
            if remaining_to_sell <= 0:
                raise OverCommitted(f"There's nothing left to sell from this lot: {lot}")
            if remaining_to_purchase <= 0:
                raise OverCommitted("There's nothing left to purchase")

            leg = min(lot.amount, remaining_to_sell)
            remaining_to_sell -= leg

            purchase_portion = total_purchase * (leg / total_sell)
            remaining_to_purchase -= purchase_portion

            destinations.append(self.exchange_taxable(
                when, lot.lot_id, sold_currency, leg, 0,
                use_sold_price_for_valuation, purchased_currency, purchase_portion
            ))

        residual_sell = round_places(remaining_to_sell, BATCH_ROUNDING_PLACES)
        residual_purchase = round_places(remaining_to_purchase, BATCH_ROUNDING_PLACES)
        if residual_sell != 0 or residual_purchase != 0:
            error = UnderCommitted if residual_sell > 0 or residual_purchase > 0 else OverCommitted
            raise error(
                f"Incorrect funds sold/purchased. Remaining: sell {remaining_to_sell:.13f}, "
                f"purchase {remaining_to_purchase:.13f}"
            )

        return destinations

    def exchange_non_taxable(
        self,
        when: DateKey,
        from_lot_name: str,
        sold_currency: str,
        sold_amount: Number,
        fee_in_sold_currency: Number,
        purchased_currency: str,
        purchased_amount_received: Number
    ) -> Lot:
        """
        Exchange one currency for another without a taxable event.

        Meant for lots bought the same day, i.e. bought and "sold" at the
        identical price, so the cost basis carries over unchanged. A lot bought
        on an earlier day is still accepted, but logged as a warning since
        such an exchange is probably taxable.

        Raises:
            InvalidSameDayExchange: The lot was bought after the exchange date.
        """
        when = to_date(when)
        purchased_amount_received = _non_negative("Purchased amount", purchased_amount_received)
        _non_negative("Exchange fee", fee_in_sold_currency)

        lot = self.find_lot_by_name(from_lot_name, sold_currency)
        if lot.original_purchase_date > when:
            raise InvalidSameDayExchange(
                f"Lot was purchased after the exchange date {when.isoformat()}\n{lot}"
            )
        if lot.original_purchase_date < when:
            logger.warning(
                f"Non-taxable exchange on {when.isoformat()} sells lot {lot.lot_id} bought "
                f"{lot.original_purchase_date.isoformat()}; this is probably taxable",
                extra=lot_context(lot.lot_id, lot.account)
            )

        cost_basis = lot.remove(sold_currency, sold_amount)

        destination = Lot.child_of(
            lot, LotType.ASSET, when, lot.account, purchased_currency, purchased_amount_received, cost_basis
        )
        self._append(destination)
        logger.debug(f"Non-taxable exchange: {destination}", extra=lot_context(lot.lot_id, lot.account))
        return destination

    def merge_identical_lots(self, purchase_date: DateKey, currency: str, lot_names: Sequence[str]) -> Lot:
        """
        Merge identical lots into one new root lot.

        They all must share the purchase date, the per-unit price and the
        account. Every lot is checked before any is drained.
        """
        purchase_date = to_date(purchase_date)
        if not lot_names:
            raise IdentityMismatch("No lots given to merge")
        if len(set(lot_names)) != len(lot_names):
            raise IdentityMismatch(f"Lots named more than once: {list(lot_names)}")

        lots = [self.find_lot_by_name(name, currency) for name in lot_names]

        first = lots[0]
        for lot in lots:
            if lot.original_purchase_date != purchase_date:
                raise IdentityMismatch(f"All lots must have the same date {purchase_date.isoformat()}\n{lot}")

            price = lot.price_per_unit
            if price is None:
                raise IdentityMismatch(f"Lot has no balance, so no price to match\n{lot}")
            if round_places(first.price_per_unit - price, MERGE_PRICE_ROUNDING_PLACES) != 0:
                raise IdentityMismatch(f"All lots must have the same price {first.price_per_unit:.9f}\n{lot}")

            if lot.account != first.account:
                raise IdentityMismatch(f"All lots must have the same account {first.account}\n{lot}")

        account = first.account
        total_amount = Decimal(0)
        total_cost_basis = Decimal(0)
        for lot in lots:
            total_amount += lot.amount
            total_cost_basis += lot.remove(currency, lot.amount)

        # a new root: no parent
        merged = Lot(
            lot_id=self._name_lot(),
            lot_type=LotType.ASSET,
            original_purchase_date=purchase_date,
            account=account,
            currency=currency,
            original_amount=total_amount,
            original_cost_basis=total_cost_basis,
        )
        self._append(merged)
        logger.debug(
            f"Merged {[lot.lot_id for lot in lots]} into {merged}",
            extra=lot_context(merged.lot_id, merged.account)
        )
        return merged

    def spend(
        self,
        when: DateKey,
        account_for_fee_attribution: str,
        from_lot_name: str,
        sold_currency: str,
        sold_amount: Number,
        note: str = ""
    ) -> Decimal:
        """
        Dispose of an amount for the reporting currency, recording gains.

        The money leaves the system. Gains, when non-zero, are recorded under
        a per-lot "<lot>.spendCapitalGains" node rather than as direct
        children, so spending never renumbers the lot's ordinary children.

        Returns:
            The reporting-currency value of the disposal.
        """
        when = to_date(when)
        sold_amount = _non_negative("Sold amount", sold_amount)
        if sold_amount == 0:
            return Decimal(0)

        lot = self.find_lot_by_name(from_lot_name, sold_currency)
        price = self.lookup_price(sold_currency, when)

        sold_cost_basis = lot.remove(sold_currency, sold_amount)
        value = price * sold_amount

        details = TaxableGainsDetails(
            account=account_for_fee_attribution,
            currency=lot.currency,
            original_purchase_date=lot.original_purchase_date,
            cost_basis=sold_cost_basis,
            sale_date=when,
            proceeds=value,
            sold_amount=sold_amount,
            note=note,
        )
        if details.gains != 0:
            gains_parent = self._spend_gains_lot(lot)
            self._append(Lot.taxable_gains(gains_parent, details, self.reporting_currency))
            logger.debug(
                f"Spend: gains {details.gains:.6f} ({note})", extra=lot_context(lot.lot_id, lot.account)
            )

        return value

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def lots(self) -> Tuple[Lot, ...]:
        """Every lot ever created, in creation order."""
        return tuple(self._lots)

    def find_lot_by_name(self, name: str, currency: str) -> Lot:
        """Find the lot with the given name, checking it holds `currency`."""
        lot = self._find_lot_by_name(name)
        if lot.currency != currency:
            raise CurrencyMismatch(f"Lot does not contain {currency}\n{lot}")
        return lot

    def lookup_price(self, currency: str, when: DateKey) -> Decimal:
        return self.prices.lookup_price(currency, when)

    def account_summary(self) -> Dict[str, Dict[str, Summary]]:
        """Summarize balances per account and currency over all live lots."""
        accounts: Dict[str, Dict[str, Summary]] = {}
        for lot in self._lots:
            if lot.amount > 0 and lot.lot_type != LotType.TAXABLE_GAINS:
                summary = accounts.setdefault(lot.account, {}).setdefault(lot.currency, Summary())
                summary.balance += lot.amount
                summary.basis += lot.cost_basis
                summary.lots.append(lot)
        return accounts

    def total_investment(self) -> Decimal:
        """
        Sum the original cost basis of the root reporting-currency lots.

        Money still sitting in such a lot counts as invested, and assets that
        entered the ledger in another currency are not counted.
        """
        return sum(
            (lot.original_cost_basis for lot in self._lots
             if lot.parent is None and lot.currency == self.reporting_currency),
            Decimal(0)
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _find_lot_by_name(self, name: str) -> Lot:
        lot = self._lots_by_name.get(name)
        if lot is None:
            raise LotNotFound(name)
        return lot

    def _append(self, lot: Lot):
        self._lots.append(lot)
        # later lots with a reused name shadow earlier ones
        self._lots_by_name[lot.lot_id] = lot

    def _name_lot(self) -> str:
        self._sequence += 1
        return str(self._sequence)

    def _spend_gains_lot(self, lot: Lot) -> Lot:
        name = f"{lot.lot_id}.{SPEND_GAINS_SUFFIX}"
        gains_lot = self._lots_by_name.get(name)
        if gains_lot is None:
            gains_lot = Lot(
                lot_id=name,
                lot_type=LotType.ASSET,
                original_purchase_date=lot.original_purchase_date,
                account="",
                currency=lot.currency,
                original_amount=Decimal(0),
                original_cost_basis=Decimal(0),
                parent=lot,
            )
            self._append(gains_lot)
        return gains_lot
