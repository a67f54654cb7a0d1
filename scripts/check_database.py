import asyncio
import sys

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError

from tracker.app.core.config import settings
from tracker.app.db.session import build_engine

# Password is masked; the rest of the URL is printed as configured
print(f"Testing connection to: {make_url(settings.database_url).render_as_string(hide_password=True)}")

async def check_db() -> int:
    engine = build_engine(settings)
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        print("✅ Connection Successful!")
        return 0
    except SQLAlchemyError as e:
        print(f"❌ Connection Failed: {e}")
        return 1
    finally:
        await engine.dispose()

if __name__ == "__main__":
    sys.exit(asyncio.run(check_db()))
