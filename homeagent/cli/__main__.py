"""Allow ``python -m homeagent.cli``."""

from homeagent.cli import main

if __name__ == "__main__":
    main()
