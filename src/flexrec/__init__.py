# Copyright (c) 2013-2025, Andrea Zoppi
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
# 1. Redistributions of source code must retain the above copyright notice,
#    this list of conditions and the following disclaimer.
#
# 2. Redistributions in binary form must reproduce the above copyright
#    notice, this list of conditions and the following disclaimer in the
#    documentation and/or other materials provided with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE
# LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR
# CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF
# SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS
# INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN
# CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE)
# ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.

__version__ = '0.1.0'

from .base import BadFramingError
from .base import ChecksumError
from .base import ErrorKind
from .base import RecordError
from .base import TruncatedError
from .base import UnrecognizedTypeError
from .core import ConversionError
from .core import ConversionSession
from .core import Direction
from .core import RunState
from .core import RunSummary
from .core import convert
from .core import convert_file
from .core import guess_direction
from .core import guess_format_name
from .core import load_image
from .formats.flex import FlexReader
from .formats.flex import FlexRecord
from .formats.flex import FlexTag
from .formats.flex import FlexWriter
from .formats.srec import SrecReader
from .formats.srec import SrecRecord
from .formats.srec import SrecTag
from .formats.srec import SrecWriter

file_types = {
    'flex': (FlexReader, FlexWriter),
    'srec': (SrecReader, SrecWriter),
}
r"""Reader and writer types of each supported format."""
