#!/usr/bin/env python3
"""
Provision the local Cosmos DB Emulator for Ballotbox.

Creates the database plus the candidates and votes containers, using the
same definitions the API uses at startup (db.cosmos_session.CONTAINERS).
Safe to run repeatedly.

    1. Start the emulator (https://aka.ms/cosmosdb-emulator), listening on :8081
    2. python scripts/init-cosmos-emulator.py

The account key below is the emulator's published development key.
"""

import asyncio
import os
import sys
from pathlib import Path

BACKEND_ROOT = Path(__file__).resolve().parent.parent / "src" / "backend"
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

EMULATOR_CONNECTION_STRING = (
    "AccountEndpoint=https://localhost:8081/;"
    "AccountKey=C2y6yDjf5/R+ob0N8A7Cgv30VRDJIWEHLM+4QDU5DE2nQ9nDuVTqobD4b8mGGyPMbIZnqyMsEcaGQy67XIw/Jw==;"
)

os.environ.setdefault("AZURE_COSMOS_CONNECTION_STRING", EMULATOR_CONNECTION_STRING)
os.environ.setdefault("AZURE_COSMOS_DISABLE_SSL", "true")
# Settings insists on a secret; provisioning never signs anything
os.environ.setdefault("SECRET_KEY", "emulator-provisioning")

from core.config import settings  # noqa: E402
from db.cosmos_session import CONTAINERS, close_cosmos, ensure_containers  # noqa: E402


async def main() -> None:
    print(f"Provisioning database '{settings.AZURE_COSMOS_DATABASE}'")
    try:
        await ensure_containers()
    except Exception as e:
        print(f"\nFailed: {e}")
        print("Is the emulator running? Check https://localhost:8081/_explorer/index.html")
        raise
    finally:
        await close_cosmos()

    for name, spec in CONTAINERS.items():
        unique = f", unique {', '.join(spec.unique_keys)}" if spec.unique_keys else ""
        print(f"   {name}: partition {spec.partition_key}{unique}")
    print("\nDone. Point the API at the emulator with:")
    print("   AZURE_COSMOS_CONNECTION_STRING=<as above>  AZURE_COSMOS_DISABLE_SSL=true")


if __name__ == "__main__":
    asyncio.run(main())
