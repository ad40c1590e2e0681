from itertools import zip_longest
import operator

# please leave this copyright notice in binary distributions.
license = """
summons/text.py
part of the Summons software package
Copyright 2023 by the Summons authors
All rights reserved.

Permission is hereby granted, free of charge, to any person obtaining a
copy of this software and associated documentation files (the "Software"),
to deal in the Software without restriction, including without limitation
the rights to use, copy, modify, merge, publish, distribute, sublicense,
and/or sell copies of the Software, and to permit persons to whom the
Software is furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included
in all copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND,
EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF
MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT.
IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM,
DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT,
TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE
OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.
"""


def presplit_textwrap(words, margin=79, *, two_spaces=True):
    """
    Joins "words" into lines no longer than "margin"
    and returns the result as a string.

    "words" should be an iterable of pre-split text.
    A word longer than "margin" gets a line to itself.

    If "two_spaces" is true, words ending in sentence-ending
    punctuation ('.', '?', and '!') are followed by two
    spaces, not one.
    """
    lines = []
    line = []
    col = 0
    lastword = ''

    for word in words:
        if not word:
            continue
        if col:
            space = "  " if (two_spaces and lastword.endswith(('.', '?', '!'))) else " "
            if (col + len(space) + len(word)) > margin:
                lines.append("".join(line))
                line.clear()
                col = 0
            else:
                line.append(space)
                col += len(space)
        line.append(word)
        col += len(word)
        lastword = word

    if line:
        lines.append("".join(line))
    return "\n".join(lines)


def merge_columns(*blobs, column_spacing=1):
    """
    Merges n blobs of text together, each blob
    getting its own column.

    Each "blob" is a tuple of three items:
        (text, min_width, max_width)
    Text is a single string, with newline characters
    separating lines.

    Each column is as wide as its longest line plus
    column_spacing, clamped to [min_width, max_width].
    A line that doesn't fit its column is printed
    anyway, and pushes the rest of its row over.

    Trailing whitespace is stripped from every line.
    This function does not text-wrap the lines.
    """
    columns = []
    widths = []

    for s, min_width, max_width in blobs:
        assert isinstance(s, str)
        operator.index(min_width)
        operator.index(max_width)

        lines = s.rstrip().split('\n')
        columns.append(lines)
        measured = max(len(line) for line in lines) + column_spacing
        widths.append(min(max_width, max(min_width, measured)))

    output = []
    for row in zip_longest(*columns, fillvalue=''):
        line = "".join(column.ljust(width) for column, width in zip(row, widths))
        output.append(line.rstrip())

    return "\n".join(output).rstrip()
