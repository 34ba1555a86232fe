"""Main entry point for SMARTMARK - can be used for direct execution.

    uvicorn main:app --reload
"""

from dotenv import load_dotenv

load_dotenv()

from smartmark.web.app import create_app  # noqa: E402

app = create_app()


if __name__ == "__main__":
    from smartmark.cli import main

    main()
