"""
Module that contains the command line app.

Why does this file exist, and why not put this in __main__?

  You might be tempted to import things from __main__ later, but that will cause
  problems: the code will get executed twice:

  - When you run `python -m flexrec` python will execute
    ``__main__.py`` as a script. That means there won't be any
    ``flexrec.__main__`` in ``sys.modules``.
  - When you import __main__ it will get executed again (as a module) because
    there's no ``flexrec.__main__`` in ``sys.modules``.

  Also see (1) from https://click.palletsprojects.com/en/stable/setuptools/#setuptools-integration
"""

import logging
import sys
from typing import Optional

import click

from .__init__ import __version__
from .__init__ import file_types
from .base import RecordError
from .core import ConversionError
from .core import Direction
from .core import convert_file
from .core import guess_format_name
from .core import load_image
from .formats.srec import SrecRecord

_logger = logging.getLogger(__name__)

FILE_PATH_IN = click.Path(dir_okay=False, allow_dash=True, readable=True, exists=True)
FILE_PATH_OUT = click.Path(dir_okay=False, allow_dash=True, writable=True)

FORMAT_CHOICE = click.Choice(list(sorted(file_types.keys())))

LINE_ENDS = {
    'lf': b'\n',
    'crlf': b'\r\n',
    'cr': b'\r',
}

LINE_END_CHOICE = click.Choice(list(LINE_ENDS.keys()))


# ----------------------------------------------------------------------------

def print_version(ctx, _, value):

    if not value or ctx.resilient_parsing:
        return

    click.echo(str(__version__))
    ctx.exit()


def guess_input_format(
    input_path: Optional[str],
    input_format: Optional[str] = None,
) -> str:

    if input_format:
        return input_format
    if input_path is None or input_path == '-':
        raise click.UsageError('standard input requires input format')
    try:
        return guess_format_name(input_path)
    except ValueError as exc:
        raise click.UsageError(str(exc))


def run_conversion(direction: Direction, infile: str, outfile: str, **options) -> None:

    try:
        summary = convert_file(direction, infile, outfile, **options)
    except ConversionError as exc:
        raise click.ClickException(f'{exc!s} in input file')

    _logger.debug('%r', summary)


# ============================================================================

@click.group()
@click.option('--version', is_flag=True, is_eager=True, expose_value=False,
              callback=print_version, help="""
    Prints the package version number.
""")
@click.option('-v', '--verbose', is_flag=True, help="""
    Logs each processed record onto the standard error.
""")
def main(verbose: bool) -> None:
    """
    Converts FLEX binaries to and from Motorola S-record files.

    Being built with `Click <https://click.palletsprojects.com/en/stable/>`_, all the
    commands follow POSIX-like syntax rules, as well as reserving the virtual
    file path ``-`` for command chaining via standard output/input buffering.
    """

    if verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr,
                            format='%(levelname)s %(name)s: %(message)s')


# ----------------------------------------------------------------------------

@main.command()
@click.option('-H', '--header', help="""
    Text of the S0 header record.
    By default it is the base name of ``INFILE``.
    It is truncated to 252 bytes.
""")
@click.option('--no-header', is_flag=True, help="""
    Does not write the S0 header record.
""")
@click.option('-e', '--line-end', type=LINE_END_CHOICE, default='lf', show_default=True, help="""
    Line terminator of the S-records.
""")
@click.argument('infile', type=FILE_PATH_IN)
@click.argument('outfile', type=FILE_PATH_OUT)
def flex2sr(
    header: Optional[str],
    no_header: bool,
    line_end: str,
    infile: str,
    outfile: str,
) -> None:
    r"""Converts a FLEX binary into Motorola S-records.

    ``INFILE`` is the path of the input FLEX binary.
    Set to ``-`` to read from standard input.

    ``OUTFILE`` is the path of the output S-record file.
    Set to ``-`` to write to standard output.

    Output records are as long as those in the input file.
    """

    options = {'end': LINE_ENDS[line_end]}
    if no_header:
        options['header'] = None
    elif header is not None:
        options['header'] = header.encode()[:SrecRecord.DATA_MAX]

    run_conversion(Direction.FLEX_TO_SREC, infile, outfile, **options)


# ----------------------------------------------------------------------------

@main.command()
@click.option('--no-verify', is_flag=True, help="""
    Does not check record checksums.
""")
@click.option('--skip-empty', is_flag=True, help="""
    Drops data records without payload.
""")
@click.argument('infile', type=FILE_PATH_IN)
@click.argument('outfile', type=FILE_PATH_OUT)
def sr2flex(
    no_verify: bool,
    skip_empty: bool,
    infile: str,
    outfile: str,
) -> None:
    r"""Converts Motorola S-records into a FLEX binary.

    ``INFILE`` is the path of the input S-record file.
    Set to ``-`` to read from standard input.

    ``OUTFILE`` is the path of the output FLEX binary.
    Set to ``-`` to write to standard output.

    Output records are the same size as input records, and the output is
    not padded to a whole number of sectors.
    """

    run_conversion(Direction.SREC_TO_FLEX, infile, outfile,
                   verify_checksum=(not no_verify),
                   skip_empty_data=skip_empty)


# ----------------------------------------------------------------------------

@main.command()
@click.option('-i', '--input-format', type=FORMAT_CHOICE, help="""
    Forces the input file format.
    Required for the standard input.
""")
@click.option('-c', '--color', is_flag=True, help="""
    Colorizes record fields with ANSI escape codes.
""")
@click.argument('infile', type=FILE_PATH_IN)
def view(
    input_format: Optional[str],
    color: bool,
    infile: str,
) -> None:
    r"""Prints the records of a file.

    Each record is printed on its own line, with its fields as hexadecimal
    digits, in the same order as in the record format.
    """

    input_format = guess_input_format(infile, input_format)
    reader_type, _ = file_types[input_format]
    stream = click.get_binary_stream('stdout')

    with click.open_file(infile, 'rb') as input_stream:
        try:
            for record in reader_type(input_stream):
                record.print(stream=stream, color=color)
        except RecordError as exc:
            raise click.ClickException(f'{exc!s} at offset {exc.offset:04X}')


# ----------------------------------------------------------------------------

@main.command()
@click.option('-i', '--input-format', type=FORMAT_CHOICE, help="""
    Forces the input file format.
    Required for the standard input.
""")
@click.argument('infile', type=FILE_PATH_IN)
def info(
    input_format: Optional[str],
    infile: str,
) -> None:
    r"""Prints the memory layout of a file.

    It lists the transfer address and the address ranges filled by data
    records, merging contiguous ones.
    """

    input_format = guess_input_format(infile, input_format)

    with click.open_file(infile, 'rb') as input_stream:
        try:
            memory, startaddr = load_image(input_stream, input_format)
        except RecordError as exc:
            raise click.ClickException(f'{exc!s} at offset {exc.offset:04X}')

    if startaddr is None:
        click.echo('transfer: none')
    else:
        click.echo(f'transfer: {startaddr:04X}')

    for start, endex in memory.intervals():
        click.echo(f'{start:04X}-{endex - 1:04X} ({endex - start} bytes)')
