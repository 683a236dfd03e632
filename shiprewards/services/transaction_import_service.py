"""
Transaction import with Hello Discount.

Hello Discount is a one-off discount on a new customer's first shipping day.
It is priced on the total publish rate of that day and stamped on each of
the day's rows as ``discount_amount`` at creation time.
"""
import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List

from ..utils.exceptions import DataStoreError, ValidationError
from .program_config_service import ProgramConfigService
from .rewards_repository import RewardsRepository
from .rule_evaluators import ProgramSnapshot, hello_discount_percent, round_half_up

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('customer_id', 'date', 'publish_rate')
OPTIONAL_FIELDS = ('service', 'origin', 'destination', 'invoice_no')


def _parse_row(row: Any, row_number: int) -> Dict[str, Any]:
    """Validate one raw row and coerce it to Transaction column values."""
    if not isinstance(row, dict):
        raise ValidationError(f'Row {row_number}: must be an object')

    for name in REQUIRED_FIELDS:
        if row.get(name) in (None, ''):
            raise ValidationError(f'Row {row_number}: {name} is required', field=name)

    try:
        tx_date = datetime.strptime(str(row['date']), '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(f'Row {row_number}: date must be YYYY-MM-DD', field='date')

    publish_rate = row['publish_rate']
    if isinstance(publish_rate, bool):
        raise ValidationError(f'Row {row_number}: publish_rate must be a number', field='publish_rate')
    try:
        publish_rate = float(publish_rate)
    except (TypeError, ValueError):
        raise ValidationError(f'Row {row_number}: publish_rate must be a number', field='publish_rate')
    if publish_rate < 0:
        raise ValidationError(f'Row {row_number}: publish_rate must be >= 0', field='publish_rate')

    parsed = {
        'customer_id': str(row['customer_id']).strip(),
        'date': tx_date,
        'publish_rate': round_half_up(publish_rate),
        'discount_amount': 0,
        'points_earned': None,
    }
    for name in OPTIONAL_FIELDS:
        value = row.get(name)
        parsed[name] = str(value).strip() if value not in (None, '') else None
    return parsed


class TransactionImportService:
    """
    Bulk insert of shipment rows.

    Usage:
        service = TransactionImportService()
        result = service.import_rows([{'customer_id': 'c1', 'date': '2025-01-15', 'publish_rate': 250000}])
    """

    def __init__(self, repository: RewardsRepository = None, snapshot: ProgramSnapshot = None):
        self.repository = repository or RewardsRepository()
        self.snapshot = snapshot

    def import_rows(self, rows: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Validate, price and insert a batch of rows in one commit.

        Raises:
            ValidationError: empty batch or malformed row (nothing is inserted)
            DataStoreError: insert failed
        """
        if not isinstance(rows, list) or not rows:
            raise ValidationError('rows must be a non-empty list', field='rows')

        parsed = [_parse_row(row, number) for number, row in enumerate(rows, start=1)]

        snapshot = self.snapshot or ProgramConfigService(self.repository).load_snapshot()
        discounted = self._apply_hello_discount(parsed, snapshot)

        try:
            inserted = self.repository.insert_transactions(parsed)
            self.repository.commit()
        except DataStoreError:
            self.repository.rollback()
            raise

        logger.info(f'Imported {len(inserted)} transactions ({discounted} with Hello Discount)')
        return {
            'inserted': len(inserted),
            'hello_discount_rows': discounted,
            'transactions': [tx.to_dict() for tx in inserted],
        }

    def _apply_hello_discount(self, parsed: List[Dict[str, Any]], snapshot: ProgramSnapshot) -> int:
        """Stamp discount_amount on new customers' first-day rows; returns the row count."""
        cfg = snapshot.hello_discount
        if cfg is None or not cfg.enabled:
            return 0

        by_customer = defaultdict(list)
        for row in parsed:
            by_customer[row['customer_id']].append(row)

        existing = self.repository.customers_with_transactions(list(by_customer))

        discounted = 0
        for customer_id, customer_rows in by_customer.items():
            if customer_id in existing:
                continue

            first_date = min(row['date'] for row in customer_rows)
            first_day = [row for row in customer_rows if row['date'] == first_date]
            first_day_total = sum(row['publish_rate'] for row in first_day)

            percent = hello_discount_percent(first_day_total, cfg)
            if percent <= 0:
                continue

            for row in first_day:
                row['discount_amount'] = round_half_up(row['publish_rate'] * percent / 100)
                discounted += 1
            logger.debug(f'Customer {customer_id}: Hello Discount {percent}% on {first_date.isoformat()}')

        return discounted
