#!/usr/bin/env python3
"""
Quick setup check for the clinic API backend
Run this to verify your installation and configuration before starting the server
"""

import asyncio
import sys
from pathlib import Path

# Add clinic_api to path
sys.path.insert(0, str(Path(__file__).parent))

async def check_imports():
    """Check that the third-party stack can be imported"""
    print("🔍 Checking imports...")

    try:
        import fastapi
        print(f"✅ FastAPI {fastapi.__version__}")
    except ImportError as e:
        print(f"❌ FastAPI import failed: {e}")
        return False

    try:
        import sqlalchemy
        print(f"✅ SQLAlchemy {sqlalchemy.__version__}")
    except ImportError as e:
        print(f"❌ SQLAlchemy import failed: {e}")
        return False

    try:
        import minio
        import sendgrid
        print("✅ MinIO and SendGrid clients")
    except ImportError as e:
        print(f"❌ Storage/mail client import failed: {e}")
        return False

    try:
        from clinic_api.config import settings
        print(f"✅ Configuration loaded ({settings.environment})")
    except ImportError as e:
        print(f"❌ Config import failed: {e}")
        return False

    return True

async def check_configuration():
    """Check that every required secret is set"""
    print("\n🔑 Checking configuration...")

    from clinic_api.config import settings

    missing = settings.missing_required()
    for name in missing:
        print(f"❌ {name} is not set")

    if not missing:
        print(f"✅ Storage: {settings.storage_provider}, credential delivery: {settings.credential_delivery}")
    return not missing

async def check_database():
    """Create the schema and run a trivial query"""
    print("\n🗄️ Checking database...")

    try:
        from clinic_api.config import settings
        from clinic_api.core.database import Database

        database = Database(settings.database_url)
        database.create_all()
        healthy = database.ping()
        database.dispose()

        if healthy:
            print(f"✅ Database reachable ({database.dialect})")
        else:
            print(f"❌ Database not reachable: {settings.database_url}")
        return healthy
    except Exception as e:
        print(f"❌ Database check failed: {e}")
        return False

async def check_storage():
    """Check that the configured object storage answers"""
    print("\n📁 Checking file storage...")

    try:
        from clinic_api.config import settings
        from clinic_api.core.storage import StorageClientFactory

        storage = StorageClientFactory.create_client(settings)
        if await storage.ping():
            print(f"✅ Storage ready ({settings.storage_provider})")
            return True

        print(f"❌ Storage not reachable ({settings.storage_provider})")
        print("💡 For S3 mode make sure MinIO is running: docker run -d -p 9000:9000 minio/minio server /data")
        return False
    except Exception as e:
        print(f"❌ Storage check failed: {e}")
        return False

async def check_api_startup():
    """Check that the API can be built"""
    print("\n🚀 Checking API startup...")

    try:
        from clinic_api.main import app
        print(f"✅ FastAPI app created successfully ({len(app.routes)} routes)")
        return True
    except Exception as e:
        print(f"❌ API startup failed: {e}")
        return False

async def run_all_checks():
    """Run all checks"""
    print("🧪 Clinic API Setup Check")
    print("=" * 50)

    checks = [
        ("Imports", check_imports),
        ("Configuration", check_configuration),
        ("Database", check_database),
        ("Storage", check_storage),
        ("API Startup", check_api_startup)
    ]

    results = {}

    for check_name, check_func in checks:
        try:
            results[check_name] = await check_func()
        except Exception as e:
            print(f"❌ {check_name} check crashed: {e}")
            results[check_name] = False

    # Summary
    print("\n" + "=" * 50)
    print("📊 Check Summary:")

    passed = sum(results.values())
    total = len(results)

    for check_name, result in results.items():
        status = "✅ PASS" if result else "❌ FAIL"
        print(f"  {status} {check_name}")

    print(f"\n🎯 Overall: {passed}/{total} checks passed")

    if passed == total:
        print("\n🎉 All checks passed! The clinic API is ready to go!")
        print("\n🚀 Next steps:")
        print("  1. Start the API: uvicorn clinic_api.main:app --reload")
        print("  2. Run the test suite: pytest")
    else:
        print(f"\n⚠️  {total - passed} checks failed. Please fix the issues above.")
        print("\n💡 Common fixes:")
        print("  - Install the package: pip install -e '.[test]'")
        print("  - Copy .env.example to .env and fill in the secrets")

    return passed == total

if __name__ == "__main__":
    success = asyncio.run(run_all_checks())
    sys.exit(0 if success else 1)
