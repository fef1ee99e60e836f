#!/usr/bin/env python3
"""
Startup script for the Welfare Scheme Eligibility Engine
"""
import subprocess
import sys
from pathlib import Path


def create_env_file():
    """Create .env file if it doesn't exist"""
    env_path = Path(".env")
    if not env_path.exists():
        print("📝 Creating .env file...")

        env_content = """# Application Configuration
APP_NAME=Welfare Scheme Eligibility Engine
APP_VERSION=1.0.0
DEBUG=true
LOG_LEVEL=INFO

# API Configuration
API_PREFIX=/api/v1
CORS_ORIGINS=http://localhost:3000,http://localhost:8080

# Storage Configuration (memory or mongo)
STORAGE_BACKEND=memory
MONGODB_URL=mongodb://localhost:27017
MONGODB_DB_NAME=welfare_schemes
SEED_SAMPLE_SCHEMES=true

# Session lifecycle
SESSION_IDLE_TIMEOUT_MINUTES=30
SESSION_SWEEP_INTERVAL_SECONDS=60

# Eligibility policy
CATALOGUE_TIMEOUT_SECONDS=5
BENEFIT_PRIORITY=financial,subsidy,loan,service
ALTERNATIVES_LIMIT=3
MIN_CONFIDENCE=0.0
EXTRA_SENSITIVE_ATTRIBUTES=
"""

        with open(env_path, 'w') as f:
            f.write(env_content)

        print("✅ .env file created successfully!")
    else:
        print("✅ .env file already exists")


def check_dependencies():
    """Check if required dependencies are installed"""
    print("🔍 Checking dependencies...")

    try:
        import fastapi  # noqa: F401
        import uvicorn  # noqa: F401
        import motor  # noqa: F401
        import pydantic_settings  # noqa: F401
        print("✅ All Python dependencies are installed")
        return True
    except ImportError as e:
        print(f"❌ Missing dependency: {e}")
        return False


def run_tests():
    """Run the test suite"""
    print("🧪 Running tests...")

    result = subprocess.run([sys.executable, '-m', 'pytest', '-q'], capture_output=True, text=True)
    if result.returncode == 0:
        print("✅ Tests passed successfully")
        return True
    print(f"❌ Tests failed:\n{result.stdout[-2000:]}")
    return False


def start_application():
    """Start the FastAPI application"""
    print("🚀 Starting the application...")

    try:
        subprocess.run([
            sys.executable, '-m', 'uvicorn',
            'welfare_engine.main:app',
            '--host', '0.0.0.0',
            '--port', '8000',
            '--reload'
        ])
    except KeyboardInterrupt:
        print("\n👋 Application stopped by user")


def main():
    """Main startup function"""
    print("🏛️  Welfare Scheme Eligibility Engine")
    print("=" * 50)

    if not Path("welfare_engine").exists():
        print("❌ Please run this script from the project root")
        sys.exit(1)

    create_env_file()

    if not check_dependencies():
        print("\n📦 Please install dependencies first:")
        print("   pip install -e '.[test]'")
        sys.exit(1)

    if not run_tests():
        print("\n⚠️  Some tests failed. The application may not work correctly.")

    print("\n🎯 System is ready!")
    print("\n📚 Next steps:")
    print("1. Visit http://localhost:8000/docs for API documentation")
    print("2. Start a session with POST /api/v1/sessions")
    print("3. Declare attributes and check eligibility for the session")

    response = input("\n🚀 Start the application now? (y/n): ").lower().strip()
    if response in ['y', 'yes']:
        start_application()
    else:
        print("\n💡 To start the application later, run:")
        print("   uvicorn welfare_engine.main:app --reload")


if __name__ == "__main__":
    main()
