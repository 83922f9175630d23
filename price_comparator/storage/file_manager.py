# price_comparator/storage/file_manager.py

"""Saves optimized baskets to disk as JSON and CSV."""

import csv
import json
import logging
from datetime import date, datetime
from pathlib import Path

from price_comparator.config.settings import Settings
from price_comparator.models.basket import OptimizedBasket
from price_comparator.storage.serialization import to_jsonable

logger = logging.getLogger("price_comparator.storage")


class FileManager:
    """Saves optimized baskets to disk as JSON and CSV."""

    def __init__(self, results_dir: Path | None = None) -> None:
        self.results_dir: Path = results_dir or Settings.RESULTS_DIR
        self.results_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(
            "FileManager initialised, results_dir=%s", self.results_dir,
        )

    def _target(self, prefix: str, day: date, suffix: str) -> Path:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.results_dir / (
            f"{prefix}_{day.isoformat()}_{timestamp}.{suffix}"
        )

    def save_basket(self, basket: OptimizedBasket, day: date) -> Path:
        """Write the full optimized basket to a timestamped JSON file."""
        filepath = self._target("basket", day, "json")
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(to_jsonable(basket), f, ensure_ascii=False, indent=2)

        logger.info(
            "Saved basket for %s (%d stores) to %s",
            day,
            len(basket.store_shopping_lists),
            filepath,
        )
        return filepath

    def export_basket_csv(
        self, basket: OptimizedBasket, day: date,
    ) -> Path:
        """Export one CSV row per purchased item, grouped by store."""
        filepath = self._target("basket", day, "csv")
        rows = 0
        with open(filepath, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(
                [
                    "Store", "Product", "Brand", "Package",
                    "Effective Price", "Currency",
                ]
            )
            for shopping_list in basket.store_shopping_lists:
                for p in shopping_list.products:
                    writer.writerow([
                        shopping_list.store_name,
                        p.name,
                        p.brand,
                        f"{p.package_quantity} {p.package_unit}",
                        p.price,
                        p.currency,
                    ])
                    rows += 1

        logger.info("Exported %d basket rows to %s", rows, filepath)
        return filepath
