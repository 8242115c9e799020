import re

ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


def clean_cli_output(output: str) -> str:
    """
    Strip ANSI codes, Rich box characters and all whitespace from CLI output
    so assertions survive terminal wrapping.
    """
    output = ANSI_ESCAPE.sub("", output)
    return re.sub(r"[\s│╭╮╰╯─]", "", output)
