#!/usr/bin/env python3
import os
import sys
import subprocess
from dotenv import load_dotenv


def main():
    load_dotenv()

    host = os.getenv('HOST', '0.0.0.0')
    port = os.getenv('PORT', '8000')

    if not os.path.exists("app"):
        print("'app' directory not found! Run from the project root.")
        sys.exit(1)

    cmd = ["uv", "run", "uvicorn", "app.main:app", "--reload", "--host", host, "--port", port]

    print(f"Running command: {' '.join(cmd)}")
    print(f"Server will be available at: http://localhost:{port}")
    print(f"API docs will be available at: http://localhost:{port}/docs")
    print("Make sure LocalStack is running and the users table exists (scripts/init_dynamodb.py)")

    try:
        subprocess.run(cmd)
    except KeyboardInterrupt:
        print("\nServer stopped by user")
        sys.exit(0)


if __name__ == "__main__":
    main()
