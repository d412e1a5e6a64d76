import logging
from dataclasses import dataclass, field

from django.db import transaction

logger = logging.getLogger(__name__)

UPSERT_BATCH_SIZE = 100


@dataclass
class UpsertResult:
    upserted: int = 0
    failed_batches: int = 0
    errors: list = field(default_factory=list)


class UpsertWriter:
    """
    Insert-or-update rows into `model` in sequential chunks, keyed on `unique_field`.

    Each chunk commits on its own. A chunk that fails is logged and recorded in
    the result; the chunks after it are still written.
    """

    def __init__(self, model, unique_field: str, batch_size: int = UPSERT_BATCH_SIZE):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.model = model
        self.unique_field = unique_field
        self.batch_size = batch_size

    def write(self, rows) -> UpsertResult:
        rows = list(rows)
        result = UpsertResult()
        batches = [rows[i:i + self.batch_size] for i in range(0, len(rows), self.batch_size)]
        table = self.model._meta.db_table

        for number, batch in enumerate(batches, start=1):
            try:
                self._write_batch(batch)
            except Exception as exc:
                result.failed_batches += 1
                result.errors.append(f"{table} batch {number}/{len(batches)}: {exc}")
                logger.error("Upsert batch %d/%d into %s failed: %s", number, len(batches), table, exc)
                continue
            result.upserted += len(batch)
            logger.info("Upserted batch %d/%d into %s: %d rows.", number, len(batches), table, len(batch))

        return result

    def _write_batch(self, batch: list[dict]):
        update_fields = [name for name in batch[0] if name != self.unique_field]
        objects = [self.model(**row) for row in batch]
        with transaction.atomic():
            self.model.objects.bulk_create(
                objects,
                update_conflicts=True,
                unique_fields=[self.unique_field],
                update_fields=update_fields,
            )

    def clear(self) -> int:
        deleted, _ = self.model.objects.all().delete()
        logger.info("Cleared %d rows from %s.", deleted, self.model._meta.db_table)
        return deleted
