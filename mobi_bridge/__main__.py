"""Package entry point for ``python -m mobi_bridge``.

WHY: Operators start the bot and the download server together as
``python -m mobi_bridge [--port N]``.

HOW: Delegates to the CLI's main() function.
"""

if __name__ == "__main__":
    from mobi_bridge.cli import main
    main()
