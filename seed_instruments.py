import asyncio
from sip_planner.core.log import configure_logging
from sip_planner.database import async_session_maker, init_db
from sip_planner.services.instrument_catalog import InstrumentCatalog, seed_instruments

async def main():
    await init_db()

    async with async_session_maker() as db:
        print("Seeding investment instruments...")
        created = await seed_instruments(db)
        print(f"Created {created} instruments.")

        catalog = await InstrumentCatalog.load(db)
        for years in range(1, 6):
            print(f"  {years}y: {len(catalog.for_horizon(years))} instruments")

    print("Done.")

if __name__ == "__main__":
    configure_logging()
    asyncio.run(main())
