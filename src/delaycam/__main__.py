"""Allow ``python -m delaycam``."""

from delaycam.main import run


if __name__ == "__main__":
    run()
