# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024 Bjoern Boss Henrichsen
import urllib.request
import sys
import re

# Generate tables and if conditions for `zx_iswgraph()` ("core/src/ZXCType.cpp")
#	=> run without arguments and paste the two marked blocks of the output into "core/src/ZXCType.cpp"

generatorName = 'gen_iswgraph.py'

# the unicode version to generate the tables for (fixed, as the lookup must match the released tables)
unicodeVersion = '15.0.0'
unicodeBaseURL = f'https://www.unicode.org/Public/{unicodeVersion}/ucd'

# the hand-maintained lists below are only valid for this version of the unicode character database
#	=> on any change of unicodeVersion, recheck all lists and update this version afterwards
tablesVersion = '15.0.0'

# codepoints of the general categories C/Z which are nevertheless visible [first, last, name]
visibleExceptions: list[tuple[int, int, str]] = [
	(0x00600, 0x00605, 'ARABIC NUMBER SIGN..ARABIC NUMBER MARK ABOVE'),
	(0x008E2, 0x008E2, 'ARABIC DISPUTED END OF AYAH'),
	(0x110BD, 0x110BD, 'KAITHI NUMBER SIGN'),
	(0x110CD, 0x110CD, 'KAITHI NUMBER SIGN ABOVE')
]

# blocks of the bmp, which are not written to the table [first, last, name]
bmpSkipRanges: list[tuple[int, int, str]] = [
	(0x3400, 0x4DBF, 'CJK Ideograph Extension A (all graphical)'),
	(0x4E00, 0x9FFF, 'CJK Ideograph (URO) (all graphical)'),
	(0xAC00, 0xD79F, 'Hangul Syllable (all graphical) (Note 0xD7A0-D7A3 not skipped)'),
	(0xD800, 0xDFFF, 'Surrogates (all non-graphical)'),
	(0xE000, 0xF8FF, 'PUA (treat all as non-graphical)')
]

# blocks of plane 1, which are not written to the table [first, last, unassigned, name]
smpSkipRanges: list[tuple[int, int, bool, str]] = [
	(0x25C0, 0x2F7F, True, 'Unassigned pages 0x125C0-12F7F'),
	(0x3480, 0x43FF, True, 'Unassigned pages 0x13480-143FF'),
	(0x4700, 0x67FF, True, 'Unassigned pages 0x14700-167FF'),
	(0x7000, 0x87F7, False, 'Tangut Ideograph'),
	(0x8D00, 0x8D07, False, 'Tangut Ideograph Supplement (Note 0x18D08 not skipped)'),
	(0x8E00, 0xAEFF, True, 'Unassigned pages 0x18E00-1AEFF'),
	(0xB300, 0xBBFF, True, 'Unassigned pages 0x1B300-1BBFF'),
	(0xBD00, 0xCEFF, True, 'Unassigned pages 0x1BD00-1CEFF')
]

# planes written as if-conditions and planes which must not contain any graphical codepoints
rangePlanes: list[int] = [0x2, 0x3, 0xE]
emptyPlanes: list[int] = [0x4, 0x5, 0x6, 0x7, 0x8, 0x9, 0xA, 0xB, 0xC, 0xD, 0xF, 0x10]

lineRegex = re.compile(r'^([0-9A-F]+);([^;]*);([CLMNPSZ])')

def InRanges(ranges: list[tuple]):
	return lambda key: any(r[0] <= key <= r[1] for r in ranges)

def ParseGraphicals(lines: list[str]) -> list[set[int]]:
	planes: list[set[int]] = [set() for _ in range(0x11)]
	firstCp, firstCategory = None, None
	isException, seenExceptions = InRanges(visibleExceptions), set()

	for lineNo, line in enumerate(lines, 1):
		if line == '':
			continue
		match = lineRegex.match(line)
		if match is None:
			raise RuntimeError(f'Could not parse line {lineNo} [{line}]')
		cp, name, category = int(match.group(1), 16), match.group(2), match.group(3)

		# resolve the legacy <..., First> and <..., Last> ranges
		if firstCp is not None:
			if ', Last>' not in name:
				raise RuntimeError(f'First with no following Last line {lineNo}')
			if category != firstCategory:
				raise RuntimeError(f'Last category different than First line {lineNo}')
			begin, firstCp = firstCp, None
		elif ', First>' in name:
			firstCp, firstCategory = cp, category
			continue
		else:
			begin = cp

		# control and separator codepoints are not graphical (except for the visible exceptions)
		if category in 'CZ':
			if not isException(cp):
				continue
			seenExceptions.add(cp)

		for i in range(begin, cp + 1):
			if i > 0x10FFFF:
				raise RuntimeError(f'Invalid Unicode [{i:X}] at line {lineNo}')
			planes[i >> 16].add(i & 0xFFFF)
	if firstCp is not None:
		raise RuntimeError(f'Half-open legacy range encountered [{firstCp:06x}]')

	# ensure the exceptions still describe codepoints of the categories C/Z
	for (first, last, name) in visibleExceptions:
		if any(cp not in seenExceptions for cp in range(first, last + 1)):
			raise RuntimeError(f'Visible exception [{name}] is not of category C/Z (revalidate the exceptions)')
	return planes

def TableEntries(plane: set[int], skip, unassigned=None) -> list[tuple[int, int]]:
	if len(plane) == 0:
		raise RuntimeError('Table must not be empty')
	lastKey = max(plane)

	# produce one entry per block of 8 keys (skipped runs are flushed and not written out)
	#	=> entries are [key at which the entry has been completed, bits of the entry]
	entries: list[tuple[int, int]] = []
	entry, inSkip = 0, False
	for key in range(lastKey + 1):
		if skip(key):
			if unassigned is not None and unassigned(key) and key in plane:
				raise RuntimeError(f'Unassigned codepoint [{key:04X}] is marked as graphical')
			if not inSkip:
				if key % 8 != 0:
					raise RuntimeError(f'Skipped keys must start on a block of 8 [{key:04X}]')
				entries.append((key, entry))
				entry, inSkip = 0, True
			continue
		if inSkip and key % 8 != 0:
			raise RuntimeError(f'Skipped keys must end on a block of 8 [{key:04X}]')
		if key > 0 and key % 8 == 0 and not inSkip:
			entries.append((key, entry))
			entry = 0
		inSkip = False
		if key in plane:
			entry |= 1 << (key % 8)
	entries.append((lastKey + 1, entry))
	return entries

def TableLines(name: str, plane: set[int], skip, comment: str = '', unassigned=None) -> list[str]:
	print(f'Creating table [zx_graph_{name}]...', file=sys.stderr)
	entries = TableEntries(plane, skip, unassigned)

	out: list[str] = []
	if comment != '':
		out.append(f'\t/* {comment} */')
	out.append(f'\tstatic const unsigned char zx_graph_{name}[{len(entries)}] = {{')

	# write 8 entries per line, annotated with the key offset reached
	for i in range(0, len(entries), 8):
		chunk = entries[i:i + 8]
		values = ' '.join(f'0x{value:02X},' for (_, value) in chunk)
		out.append(f'\t\t{values} /*{chunk[-1][0]:04X}*/')
	out.append('\t};')
	return out

def RangeList(plane: set[int]) -> list[tuple[int, int]]:
	ranges: list[tuple[int, int]] = []
	for key in sorted(plane):
		if len(ranges) > 0 and ranges[-1][1] + 1 == key:
			ranges[-1] = (ranges[-1][0], key)
		else:
			ranges.append((key, key))
	return ranges

def RangeLines(plane: set[int], base: int) -> list[str]:
	print(f'Creating conditions for [{base:X}]...', file=sys.stderr)
	if len(plane) == 0:
		raise RuntimeError(f'Conditions for [{base:X}] must not be empty')
	ranges = RangeList(plane)

	out: list[str] = [f'\tif (u <= 0x{base + 0xFFFF:X}) {{']
	beginLine, beginContinued = '\t\t', '\t\t\t\t'
	line, total = beginLine, 0
	for i, (first, last) in enumerate(ranges):
		total += last - first + 1

		# wrap overlong lines
		if len(line) > 100:
			out.append(line)
			line = beginContinued

		if first == last:
			condition = f'u == 0x{base + first:X}'
		else:
			condition = f'(u >= 0x{base + first:X} && u <= 0x{base + last:X})'
		if i == 0:
			line += f'return {condition}'
		else:
			line += ('' if line == beginContinued else ' ') + f'|| {condition}'
	out.append(line + ';')
	out.append('\t}')

	if total != len(plane):
		raise RuntimeError(f'Conditions for [{base:X}] cover [{total}] instead of [{len(plane)}] codepoints')
	return out

def MakeIswgraph(planes: list[set[int]]) -> str:
	for plane in emptyPlanes:
		if len(planes[plane]) != 0:
			raise RuntimeError(f'Plane [{plane:X}] unexpectedly contains graphical codepoints')

	# the tables for the bmp and plane 1
	out: list[str] = [f'\t// Begin copy/paste of `zx_iswgraph()` tables output from "{generatorName}"']
	out += TableLines('bmp', planes[0], InRanges(bmpSkipRanges), f'Unicode {unicodeVersion}')
	out += TableLines('1', planes[1], InRanges(smpSkipRanges), '', InRanges([r for r in smpSkipRanges if r[2]]))
	out.append(f'\t// End copy/paste of `zx_iswgraph()` tables output from "{generatorName}"')

	# the conditions for the sparse planes
	out.append(f'\t// Begin copy/paste of `zx_iswgraph()` if conditions output from "{generatorName}"')
	for plane in rangePlanes:
		out += RangeLines(planes[plane], plane << 16)
	out.append(f'\t// End copy/paste of `zx_iswgraph()` if conditions output from "{generatorName}"')
	return '\n'.join(out) + '\n'

def ExtractVersion(lines: list[str]) -> str:
	versions = re.findall('Version ([0-9]+(\\.[0-9]+)*) of the Unicode Standard', '\n'.join(lines))
	if len(set(v[0] for v in versions)) != 1:
		raise RuntimeError('Unable to extract the version')
	return versions[0][0]

def ReadSource(path: str) -> list[str]:
	print(f'Reading [{path}]...', file=sys.stderr)
	try:
		if re.match(r'^https?://', path):
			with urllib.request.urlopen(path) as response:
				content = response.read().decode('utf-8')
		else:
			with open(path, 'r', encoding='utf-8') as file:
				content = file.read()
	except (OSError, UnicodeDecodeError) as e:
		raise RuntimeError(f'Could not read file [{path}]: {e}') from e
	return content.splitlines()

def main() -> int:
	try:
		if tablesVersion != unicodeVersion:
			raise RuntimeError(f'Tables are validated for [{tablesVersion}] but generating for [{unicodeVersion}] (revalidate the tables)')

		# ensure the fetched database matches the expected version
		version = ExtractVersion(ReadSource(f'{unicodeBaseURL}/ReadMe.txt'))
		if version != unicodeVersion:
			raise RuntimeError(f'Unexpected unicode version [{version}] instead of [{unicodeVersion}]')

		# parse all lines before producing any output
		planes = ParseGraphicals(ReadSource(f'{unicodeBaseURL}/UnicodeData.txt'))
		text = MakeIswgraph(planes)
	except RuntimeError as e:
		print(f'gen_iswgraph: ERROR: {e}', file=sys.stderr)
		return 1
	sys.stdout.write(text)
	return 0

if __name__ == '__main__':
	sys.exit(main())
