# price_comparator/services/ingestion.py

"""Import a snapshot directory, then evaluate price alerts."""

import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

from price_comparator.importers.snapshot_importer import (
    ImportReport,
    SnapshotImporter,
)
from price_comparator.services.alert_service import (
    AlertService,
    TriggeredAlert,
)
from price_comparator.storage.record_store import RecordStore

logger = logging.getLogger("price_comparator.ingestion")


@dataclass
class IngestionResult:
    """Import counts plus the alerts that fired afterwards."""

    report: ImportReport
    triggered_alerts: list[TriggeredAlert] = field(
        default_factory=lambda: list[TriggeredAlert]()
    )


class IngestionService:
    """Runs an import followed by an alert evaluation pass."""

    def __init__(
        self,
        store: RecordStore,
        importer: SnapshotImporter | None = None,
        alerts: AlertService | None = None,
    ) -> None:
        self._importer = importer or SnapshotImporter(store)
        self._alerts = alerts or AlertService(store)

    def run(
        self, directory: str | Path, today: date | None = None,
    ) -> IngestionResult:
        """Import *directory* and report which alerts were triggered."""
        report = self._importer.import_from(directory)
        result = IngestionResult(report=report)
        if not report.directory_found:
            return result

        result.triggered_alerts = self._alerts.evaluate_all(today=today)
        if result.triggered_alerts:
            logger.info(
                "Found %d triggered price alerts after import of %s",
                len(result.triggered_alerts),
                directory,
            )
        return result
