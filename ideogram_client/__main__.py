"""Allow ``python -m ideogram_client``."""

from ideogram_client.cli.main import main

if __name__ == "__main__":
    main()
