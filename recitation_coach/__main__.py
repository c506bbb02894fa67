"""Package entry point for ``python -m recitation_coach``.

WHY: Users run the coach as ``python -m recitation_coach practice ...``
without installing the console script.

HOW: Delegates straight to the CLI's main() function, which dispatches
on the subcommand (practice, feedback, translations, serve).
"""

from recitation_coach.cli import main

if __name__ == "__main__":
    main()
