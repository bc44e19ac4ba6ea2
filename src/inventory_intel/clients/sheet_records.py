"""
Normalizes raw spreadsheet rows into the engine's canonical records.

Rows arrive exactly as the sheet reader returned them: lists of dicts or
DataFrames whose headers drifted over the years (English, Thai, legacy
names like `product` vs `sku`, quantities typed as "1,200"). Everything
shape-specific is handled here so the core only ever sees one Product and
one Transaction shape, keyed by the same normalized SKU.

To support a new sheet layout:
1. Add its header spellings to the *_COLUMNS alias maps
2. Keep the canonical field names unchanged
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable
import logging

import pandas as pd

from ..core.models import CycleCount, DamageRecord, Product, Transaction, TransactionType
from ..core.parsers import DateParser, SKUNormalizer, parse_quantity
from ..core.quality import DataQualityChecker, DataQualityIssue, DataQualityReport

logger = logging.getLogger(__name__)

Rows = pd.DataFrame | Iterable[dict[str, Any]] | None


@dataclass
class LoadedData:
    """Container for all normalized records and their quality reports."""

    products: tuple[Product, ...] = ()
    transactions: tuple[Transaction, ...] = ()
    cycle_counts: tuple[CycleCount, ...] = ()
    damage: tuple[DamageRecord, ...] = ()
    quality_reports: dict[str, DataQualityReport] = field(default_factory=dict)

    @property
    def inbound(self) -> list[Transaction]:
        return [t for t in self.transactions if t.type == TransactionType.IN]

    @property
    def outbound(self) -> list[Transaction]:
        return [t for t in self.transactions if t.type == TransactionType.OUT]


class SheetRecordLoader:
    """
    Turns sheet rows into Products, Transactions, CycleCounts and DamageRecords.

    Rows that cannot be used (no product name, unreadable date, quantity <= 0)
    are dropped and reported; they never reach the analytics.
    """

    # Canonical field -> accepted header spellings (compared lower-case, "_" for spaces)
    PRODUCT_COLUMNS = {
        "id": ["id", "product_id", "productid"],
        "name": ["name", "product_name", "item_name", "product", "ชื่อสินค้า"],
        "sku": ["sku", "item_code", "code"],
        "stock": ["stock", "balance", "qty_on_hand", "on_hand", "จำนวนคงเหลือ", "คงเหลือ"],
        "min_stock": ["min_stock", "minstock", "min", "safety_stock", "จำนวนขั้นต่ำ"],
        "price": ["price", "cost", "unit_price", "ราคา", "ราคามาตรฐาน"],
        "unit": ["unit", "หน่วยนับ"],
        "location": ["location", "shelf", "zone", "ที่เก็บ", "ตำแหน่ง"],
        "category": ["category", "group", "กลุ่มสินค้า"],
        "status": ["status", "สถานะ"],
    }

    TRANSACTION_COLUMNS = {
        "date": ["date", "transaction_date", "วันที่"],
        "product": ["product", "sku", "product_name", "item", "ชื่อสินค้า", "รายการ"],
        "qty": ["qty", "quantity", "count", "จำนวน"],
        "type": ["type", "transaction_type", "direction"],
        "batch": ["batch", "lot", "batch_no"],
        "expiry_date": ["expiry_date", "expirydate", "expiry", "exp"],
        "doc_ref": ["docref", "doc_ref", "ref", "reference", "note", "po"],
        "owner": ["owner", "customer"],
    }

    CYCLE_COUNT_COLUMNS = {
        "product": ["product_name", "product", "sku", "name"],
        "date": ["count_date", "date"],
        "system_qty": ["system_qty", "system"],
        "counted_qty": ["actual_qty", "counted_qty", "counted", "actual"],
        "variance": ["variance", "diff"],
    }

    DAMAGE_COLUMNS = {
        "product": ["product_name", "product", "sku", "name"],
        "qty": ["quantity", "qty"],
        "date": ["date"],
    }

    def __init__(self, product_key: str = "name"):
        """
        Args:
            product_key: Product field the movement logs refer to ("name" or "sku").
                         The sheets log movements by product name.
        """
        self.product_key = product_key
        self.date_parser = DateParser()
        self.sku_normalizer = SKUNormalizer()

    # --- Shared helpers ---

    @staticmethod
    def _header(value: Any) -> str:
        return "_".join(str(value).strip().lower().split())

    def _frame(self, rows: Rows, aliases: dict[str, list[str]]) -> pd.DataFrame:
        """DataFrame with headers renamed to canonical fields (first alias match wins)."""
        if rows is None:
            df = pd.DataFrame()
        elif isinstance(rows, pd.DataFrame):
            df = rows.copy()
        else:
            df = pd.DataFrame(list(rows))
        df = df.reset_index(drop=True)

        rename: dict[Any, str] = {}
        taken: set[str] = set()
        for column in df.columns:
            header = self._header(column)
            for canonical, spellings in aliases.items():
                if canonical not in taken and header in spellings:
                    rename[column] = canonical
                    taken.add(canonical)
                    break
        df = df.rename(columns=rename)

        # Only the mapped columns survive; unknown headers are ignored
        for canonical in aliases:
            if canonical not in df.columns:
                df[canonical] = None
        return df[list(aliases)]

    @staticmethod
    def _date(value: Any) -> date | None:
        return value if isinstance(value, date) else None

    @staticmethod
    def _text(value: Any, default: str = "") -> str:
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            return default
        text = str(value).strip()
        return text or default

    # --- Products ---

    def load_products(self, rows: Rows) -> tuple[tuple[Product, ...], DataQualityReport]:
        """
        Load the product master.

        Sheet defaults: category "General", unit "pcs", status "Active",
        location "-". Products get positional ids ("P-1", ...) when the sheet
        has no id column.
        """
        df = self._frame(rows, self.PRODUCT_COLUMNS)
        key_source = df["sku"] if self.product_key == "sku" else df["name"]
        df["sku_key"] = self.sku_normalizer.normalize_series(key_source)

        report = (
            DataQualityChecker("Products")
            .check_required("name")
            .check_duplicates(["sku_key"])
            .run(df)
        )

        products = []
        for i, row in df.iterrows():
            name = self._text(row["name"])
            key = self._text(row["sku_key"])
            if not name or not key:
                continue
            min_stock = parse_quantity(row["min_stock"], default=None)
            products.append(
                Product(
                    id=self._text(row["id"], default=f"P-{i + 1}"),
                    name=name,
                    sku=key,
                    stock=int(parse_quantity(row["stock"])),
                    min_stock=int(min_stock) if min_stock is not None else None,
                    price=parse_quantity(row["price"]),
                    unit=self._text(row["unit"], default="pcs"),
                    location=self._text(row["location"], default="-"),
                    category=self._text(row["category"], default="General"),
                    status=self._text(row["status"], default="Active"),
                )
            )

        self._log_load("Products", len(df), len(products))
        return tuple(products), report

    # --- Transactions ---

    def load_transactions(
        self,
        rows: Rows,
        tx_type: TransactionType | str | None = None,
        known_skus: set[str] | None = None,
        source_name: str | None = None,
    ) -> tuple[tuple[Transaction, ...], DataQualityReport]:
        """
        Load one movement sheet.

        Args:
            tx_type: Direction for every row (the IN and OUT logs are separate
                     sheets). When None, a `type` column must supply it.
            known_skus: Product keys from the master; unknown references are
                        reported but still loaded.
        """
        if isinstance(tx_type, TransactionType):
            forced = tx_type
        else:
            forced = TransactionType(str(tx_type).upper()) if tx_type else None
        source = source_name or (f"Transactions {forced.value}" if forced else "Transactions")

        df = self._frame(rows, self.TRANSACTION_COLUMNS)
        if df.empty:
            self._log_load(source, 0, 0)
            return (), DataQualityChecker(source).run(df)

        df["sku_key"] = self.sku_normalizer.normalize_series(df["product"])
        df["date_parsed"] = self.date_parser.parse_series(df["date"])
        df["expiry_parsed"] = self.date_parser.parse_series(df["expiry_date"])
        df["qty_parsed"] = df["qty"].apply(parse_quantity)
        df["type_parsed"] = (
            forced.value if forced else df["type"].apply(self._parse_type)
        )

        checker = (
            DataQualityChecker(source)
            .check_required("product")
            .check_unparsed("date", "date_parsed")
            .check_positive("qty_parsed")
            .add_check(self._check_types)
        )
        if known_skus is not None:
            checker.check_known_keys("sku_key", known_skus)
        report = checker.run(df)

        usable = (
            df["sku_key"].notna()
            & df["date_parsed"].notna()
            & (df["qty_parsed"] > 0)
            & df["type_parsed"].notna()
        )

        transactions = tuple(
            Transaction(
                date=row["date_parsed"],
                sku=row["sku_key"],
                qty=row["qty_parsed"],
                type=TransactionType(row["type_parsed"]),
                product_name=self._text(row["product"]),
                batch=self._text(row["batch"]) or None,
                expiry_date=self._date(row["expiry_parsed"]),
                doc_ref=self._text(row["doc_ref"]) or None,
                owner=self._text(row["owner"]) or None,
            )
            for _, row in df[usable].iterrows()
        )

        self._log_load(source, len(df), len(transactions))
        return transactions, report

    def _parse_type(self, value: Any) -> str | None:
        text = self._text(value).upper()
        return text if text in ("IN", "OUT") else None

    @staticmethod
    def _check_types(df: pd.DataFrame) -> list[DataQualityIssue]:
        missing = df["type_parsed"].isna()
        count = int(missing.sum())
        if count == 0:
            return []
        return [
            DataQualityIssue(
                column="type",
                issue_type="invalid_type",
                severity="critical",
                count=count,
                percentage=count / len(df) * 100,
                sample_values=df.loc[missing, "type"].head(5).tolist(),
                description=f"{count:,} rows are neither IN nor OUT",
            )
        ]

    # --- Cycle counts & damage ---

    def load_cycle_counts(self, rows: Rows) -> tuple[CycleCount, ...]:
        """Load the cycle count log; variance defaults to counted - system."""
        df = self._frame(rows, self.CYCLE_COUNT_COLUMNS)
        counts = []
        for _, row in df.iterrows():
            sku = self.sku_normalizer.normalize(row["product"])
            if not sku:
                continue
            counted_on = self.date_parser.parse(row["date"])
            system_qty = parse_quantity(row["system_qty"])
            counted_qty = parse_quantity(row["counted_qty"])
            variance = parse_quantity(row["variance"], default=None)
            if variance is None:
                variance = counted_qty - system_qty

            counts.append(
                CycleCount(
                    id=f"{sku}@{counted_on.isoformat() if counted_on else 'undated'}",
                    sku=sku,
                    date=counted_on,
                    system_qty=system_qty,
                    counted_qty=counted_qty,
                    variance=variance,
                    product_name=self._text(row["product"]),
                )
            )

        self._log_load("Cycle counts", len(df), len(counts))
        return tuple(counts)

    def load_damage(self, rows: Rows) -> tuple[DamageRecord, ...]:
        df = self._frame(rows, self.DAMAGE_COLUMNS)
        records = []
        for _, row in df.iterrows():
            sku = self.sku_normalizer.normalize(row["product"])
            qty = parse_quantity(row["qty"])
            if not sku or qty <= 0:
                continue
            records.append(
                DamageRecord(
                    sku=sku,
                    qty=qty,
                    date=self.date_parser.parse(row["date"]),
                    product_name=self._text(row["product"]),
                )
            )

        self._log_load("Damage", len(df), len(records))
        return tuple(records)

    # --- Everything ---

    def load_all(
        self,
        products: Rows = None,
        inbound: Rows = None,
        outbound: Rows = None,
        cycle_counts: Rows = None,
        damage: Rows = None,
    ) -> LoadedData:
        """
        Load every sheet the reports use.

        A sheet that failed to fetch should be passed as None; it loads as
        empty instead of failing the whole report.
        """
        product_records, product_report = self.load_products(products)
        known = {p.sku for p in product_records}

        inbound_records, inbound_report = self.load_transactions(
            inbound, TransactionType.IN, known_skus=known, source_name="Inbound"
        )
        outbound_records, outbound_report = self.load_transactions(
            outbound, TransactionType.OUT, known_skus=known, source_name="Outbound"
        )

        return LoadedData(
            products=product_records,
            transactions=inbound_records + outbound_records,
            cycle_counts=self.load_cycle_counts(cycle_counts),
            damage=self.load_damage(damage),
            quality_reports={
                "products": product_report,
                "inbound": inbound_report,
                "outbound": outbound_report,
            },
        )

    @staticmethod
    def _log_load(source: str, total: int, kept: int) -> None:
        dropped = total - kept
        if dropped:
            logger.warning("%s: dropped %d of %d rows", source, dropped, total)
        logger.info("%s: loaded %d records", source, kept)
