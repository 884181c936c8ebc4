import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlmodel import select
from sqlalchemy.ext.asyncio import AsyncSession

from sip_planner.models.instrument import Instrument, InstrumentCategory, InvestmentInstrument

logger = logging.getLogger(__name__)

BANK = InstrumentCategory.BANK_SAVINGS
MF = InstrumentCategory.MUTUAL_FUND
EQUITY = InstrumentCategory.EQUITY
GOLD = InstrumentCategory.GOLD

# (category, name, description, horizon years, annual rate)
DEFAULT_INSTRUMENTS: List[Tuple[InstrumentCategory, str, Optional[str], int, str]] = [
    (EQUITY, "Stocks | Top 25 Sensex Stocks", "Top 25 companies in stock Market", 1, "0.02"),
    (EQUITY, "Stocks | Top 25 Sensex Stocks", None, 2, "0.10"),
    (EQUITY, "Stocks | Top 25 Sensex Stocks", None, 3, "0.21"),
    (EQUITY, "Stocks | Top 25 Sensex Stocks", None, 4, "0.24"),
    (EQUITY, "Stocks | Top 25 Sensex Stocks", None, 5, "0.30"),
    (GOLD, "Digital Gold", "Gold investment in digital form", 1, "0.08"),
    (GOLD, "Digital Gold", None, 2, "0.21"),
    (GOLD, "Digital Gold", None, 3, "0.17"),
    (GOLD, "Digital Gold", None, 4, "0.17"),
    (GOLD, "Digital Gold", None, 5, "0.24"),
    (MF, "UTI Nifty Next 50 Index Fund Direct - Growth", None, 1, "0.08"),
    (MF, "DSP Nifty Next 50 Index Fund Direct - Growth", None, 2, "0.21"),
    (MF, "ICICI Prudential Nifty Next 50 Index Fund Direct - Growth", None, 3, "0.17"),
    (MF, "SBI Nifty Index Direct Plan-Growth", None, 4, "0.19"),
    (MF, "HDFC Nifty 50 Index Fund Direct-Growth", None, 5, "0.24"),
    (MF, "Nippon India Large Cap Fund Direct-Growth", None, 1, "0.108"),
    (MF, "Nippon India Large Cap Fund Direct-Growth", None, 2, "0.21"),
    (MF, "ICICI Prudential Bluechip Fund Direct-Growth", None, 3, "0.19"),
    (MF, "ICICI Prudential Bluechip Fund Direct-Growth", None, 4, "0.19"),
    (MF, "HDFC Large Cap Fund Direct-Growth", None, 5, "0.25"),
    (MF, "HDFC Midcap Opportunities Fund Direct-Growth", None, 1, "0.097"),
    (MF, "Nippon India Growth Fund Direct-Growth", None, 2, "0.30"),
    (MF, "ICICI Prudential Midcap Direct Plan-Growth", None, 3, "0.25"),
    (MF, "SBI Magnum Mid Cap Direct Plan-Growth", None, 4, "0.28"),
    (MF, "Kotak Emerging Equity Fund Direct-Growth", None, 5, "0.33"),
    (MF, "Tata Small Cap Fund Direct - Growth", None, 1, "0.07"),
    (MF, "Nippon India Small Cap Fund Direct-Growth", None, 2, "0.26"),
    (MF, "Franklin India Smaller Companies Fund Direct-Growth", None, 3, "0.23"),
    (MF, "HDFC Small Cap Fund Direct-Growth", None, 4, "0.23"),
    (MF, "Axis Small Cap Fund Direct-Growth", None, 5, "0.38"),
    (MF, "ICICI Prudential Equity & Debt Fund Direct-Growth", None, 1, "0.11"),
    (MF, "DSP Aggressive Hybrid Fund Direct-Growth", None, 2, "0.21"),
    (MF, "Kotak Equity Hybrid Fund Direct-Growth", None, 3, "0.18"),
    (MF, "UTI Aggressive Hybrid Fund Direct Fund-Growth", None, 4, "0.19"),
    (MF, "SBI Equity Hybrid Fund Direct Plan-Growth", None, 5, "0.23"),
    (MF, "HDFC Multi Asset Fund Direct-Growth", None, 1, "0.10"),
    (MF, "Tata Multi Asset Opportunities Fund Direct - Growth", None, 2, "0.19"),
    (MF, "SBI Multi Asset Allocation Fund Direct-Growth", None, 3, "0.17"),
    (MF, "Axis Multi Asset Allocation Direct Plan-Growth", None, 4, "0.18"),
    (MF, "ICICI Prudential Multi Asset Fund Direct-Growth", None, 5, "0.22"),
    (MF, "ICICI Prudential Short Term Debt Fund Direct Plan-Growth", None, 1, "0.09"),
    (MF, "HDFC Short Term Debt Fund Direct Plan-Growth", None, 2, "0.085"),
    (MF, "SBI Short Term Debt Fund Direct Plan-Growth", None, 3, "0.08"),
    (MF, "Tata Short Term Bond Direct Plan-Growth", None, 4, "0.08"),
    (MF, "Nippon India Short Term Fund Direct-Growth", None, 5, "0.071"),
    (BANK, "SBI Recurring Deposit", None, 1, "0.068"),
    (BANK, "HDFC Bank Recurring Deposit", None, 2, "0.067"),
    (BANK, "Kotak Recurring Deposit", None, 3, "0.067"),
    (BANK, "ICICI Bank Recurring Deposit", None, 4, "0.067"),
    (BANK, "Axis Bank Recurring Deposit", None, 5, "0.067"),
    (BANK, "Axis Bank Fixed Deposit", None, 1, "0.03"),
    (BANK, "Kotak Fixed Deposit", None, 2, "0.06"),
    (BANK, "SBI Fixed Deposit", None, 3, "0.07"),
    (BANK, "HDFC Bank Fixed Deposit", None, 4, "0.07"),
    (BANK, "Bandhan Fixed Deposit", None, 5, "0.07"),
]


def default_instruments() -> List[Instrument]:
    return [
        Instrument(category=category, name=name, description=description, horizonYears=years, annualRate=Decimal(rate))
        for category, name, description, years, rate in DEFAULT_INSTRUMENTS
    ]


class InstrumentCatalog:
    """
    Ordered, read-only table of instruments.

    Catalog order matters: whenever two instruments tie on rate, the one that
    appears first wins. Loading from the database keeps insertion order
    (created_at, then the time-ordered uuid7 id).
    """

    def __init__(self, instruments: Iterable[Instrument]):
        self._instruments: Tuple[Instrument, ...] = tuple(instruments)
        self._positions: Dict[Tuple[str, int], int] = {}
        for position, instrument in enumerate(self._instruments):
            key = (instrument.name, instrument.horizonYears)
            if key in self._positions:
                raise ValueError(f"Duplicate instrument {instrument.name!r} for {instrument.horizonYears} year(s)")
            self._positions[key] = position

    @classmethod
    def default(cls) -> "InstrumentCatalog":
        return cls(default_instruments())

    @classmethod
    async def load(cls, session: AsyncSession) -> "InstrumentCatalog":
        stmt = select(InvestmentInstrument).order_by(InvestmentInstrument.createdAt, InvestmentInstrument.id)
        result = await session.execute(stmt)
        return cls(row.to_instrument() for row in result.scalars().all())

    def __len__(self) -> int:
        return len(self._instruments)

    def __iter__(self):
        return iter(self._instruments)

    @property
    def instruments(self) -> Tuple[Instrument, ...]:
        return self._instruments

    def position(self, instrument: Instrument) -> int:
        return self._positions[(instrument.name, instrument.horizonYears)]

    def for_horizon(self, horizon_years: int) -> List[Instrument]:
        return [i for i in self._instruments if i.horizonYears == horizon_years]

    def by_category(self, horizon_years: int) -> Dict[InstrumentCategory, List[Instrument]]:
        grouped: Dict[InstrumentCategory, List[Instrument]] = {}
        for instrument in self.for_horizon(horizon_years):
            grouped.setdefault(instrument.category, []).append(instrument)
        return grouped

    def select_best_instrument(self, category: InstrumentCategory, horizon_years: int) -> Optional[Instrument]:
        """Highest-rate instrument for the category and horizon; first in catalog order on ties."""
        best: Optional[Instrument] = None
        for instrument in self._instruments:
            if instrument.category != category or instrument.horizonYears != horizon_years:
                continue
            if best is None or instrument.annualRate > best.annualRate:
                best = instrument
        return best


async def seed_instruments(session: AsyncSession, instruments: Optional[Iterable[Instrument]] = None) -> int:
    """
    Inserts the given (default) instruments, skipping any (name, horizon) already stored.

    Returns:
        int: number of rows inserted.
    """
    created = 0
    for instrument in instruments if instruments is not None else default_instruments():
        existing = await find_instrument(session, instrument.name, instrument.horizonYears)
        if existing:
            logger.info(f"Instrument already exists for {instrument.name} ({instrument.horizonYears}y). Skipping.")
            continue
        session.add(InvestmentInstrument(
            category=instrument.category.value,
            name=instrument.name,
            description=instrument.description,
            horizonYears=instrument.horizonYears,
            annualRate=instrument.annualRate,
        ))
        # Commit one by one so created_at keeps catalog order
        await session.commit()
        created += 1

    logger.info(f"Instrument seeding complete: {created} created.")
    return created


async def find_instrument(session: AsyncSession, name: str, horizon_years: int) -> Optional[InvestmentInstrument]:
    stmt = select(InvestmentInstrument).where(
        InvestmentInstrument.name == name,
        InvestmentInstrument.horizonYears == horizon_years,
    )
    result = await session.execute(stmt)
    return result.scalars().first()
