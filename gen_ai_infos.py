# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2024 Bjoern Boss Henrichsen
import urllib.request
import subprocess
import argparse
import sys
import re

# Generate `aiInfos[]` for `HRIFromGS1()` ("core/src/HRI.cpp")
#	=> run from the project directory and paste the output into "core/src/HRI.cpp", replacing the `aiInfos[]` definition

dictionaryRepoURL = 'https://github.com/gs1/gs1-syntax-dictionary'
dictionaryFileURL = 'https://raw.githubusercontent.com/gs1/gs1-syntax-dictionary/{tag}/gs1-syntax-dictionary.txt'

# AIs "3[1234569]nn", "703n" and "723n" are stored by their three-digit prefix to match the `AiInfo::aiSize()` logic
#	=> hand-maintained against the dictionary releases, recheck whenever new AIs are added to these windows
irregularWindows: list[tuple[int, int]] = [
	(3100, 3699),
	(3900, 3999),
	(7030, 7039),
	(7230, 7239)
]

# regular tables as [header, first, limit, bucket] (a blank line separates the buckets for readability)
regularTables: list[tuple[str, int, int, int]] = [
	('TWO_DIGIT_DATA_LENGTH', 0, 100, 10),
	('THREE_DIGIT_DATA_LENGTH', 100, 1000, 100),
	('FOUR_DIGIT_DATA_LENGTH', 1000, 10000, 1000)
]

lineRegex = re.compile(r'^([0-9]+(?:-[0-9]+)?) +(?:([^\sA-Za-z0-9#\[\]]+) +)?([NXYZ][0-9.][ NXYZ0-9.,:a-z=|\[\]]*)(?:# (.+))?$')
releaseRegex = re.compile(r'^# Release: ([0-9]{4}-[0-9]{2}-[0-9]{2})$')
tagRegex = re.compile(r'^[0-9]{4}-[0-9]{2}-[0-9]{2}$')
validatorRegex = re.compile(r'^([NXYZ])([0-9]+)?(\.\.[0-9]+)?$')
optionalRegex = re.compile(r'^\[([NXYZ])([0-9]+)?(\.\.[0-9]+)?\]$')

class AiRecord:
	def __init__(self, first: int, last: int, ranged: bool, length: int) -> None:
		if first < 0 or first > last or (not ranged and first != last):
			raise RuntimeError(f'Malformed AI encountered [{first}-{last}]')
		self.first = first
		self.last = last
		self.ranged = ranged
		self.length = length
		self.used = False
	def __str__(self) -> str:
		if self.ranged:
			return f'[{self.first:02}-{self.last:02}] -> {self.length}'
		return f'[{self.first:02}] -> {self.length}'
	def __repr__(self) -> str:
		return self.__str__()
	def keys(self) -> range:
		return range(self.first, self.last + 1)

def ComponentLength(validator: str, lineNo: int) -> tuple[int, int]:
	# mandatory component: fixed [N3], variable with minimum [N3..6] or variable [N..6]
	match = validatorRegex.match(validator)
	if match is not None and (match.group(2) is not None or match.group(3) is not None):
		if match.group(3) is None:
			return int(match.group(2)), int(match.group(2))
		return (1 if match.group(2) is None else int(match.group(2))), int(match.group(3)[2:])

	# optional component: the minimum only counts, if explicitly given as range
	match = optionalRegex.match(validator)
	if match is not None and (match.group(2) is not None or match.group(3) is not None):
		if match.group(3) is None:
			return 0, int(match.group(2))
		return (0 if match.group(2) is None else int(match.group(2))), int(match.group(3)[2:])
	raise RuntimeError(f'Could not parse validator [{validator}] line {lineNo}')

def SpecLength(spec: str, lineNo: int) -> int:
	# strip mandatory association, invalid pairings and digital link primary key info
	spec = re.sub(r' +req=[0-9,n]*', '', spec.strip())
	spec = re.sub(r' +ex=[0-9,n]*', '', spec)
	spec = re.sub(r' +dlpkey[=0-9,|]*', '', spec)

	# sum up the lengths of all components (checkers following the validator are irrelevant)
	minLength, maxLength = 0, 0
	for component in spec.split():
		low, high = ComponentLength(component.split(',')[0], lineNo)
		minLength += low
		maxLength += high

	# fixed lengths are positive, variable lengths store the negative maximum
	return (maxLength if minLength == maxLength else -maxLength)

def ParseAiLines(lines: list[str]) -> tuple[list[AiRecord], str]:
	records: list[AiRecord] = []
	tag = ''

	for lineNo, line in enumerate(lines, 1):
		if line == '':
			continue

		# check if this is a comment, which might contain the release of a local file
		if line[0] == '#':
			match = releaseRegex.match(line)
			if match is not None and tag == '':
				tag = match.group(1)
			continue

		# parse the ai/ai-range and the specification
		match = lineRegex.match(line)
		if match is None:
			raise RuntimeError(f'Could not parse line {lineNo} [{line}]')
		ai, spec = match.group(1), match.group(3)
		length = SpecLength(spec, lineNo)
		if '-' in ai:
			first, last = ai.split('-')
			records.append(AiRecord(int(first), int(last), True, length))
		else:
			records.append(AiRecord(int(ai), int(ai), False, length))
	return sorted(records, key=lambda r: r.first), tag

def FormatEntry(tab: str, key: int, length: int) -> str:
	return f'{tab}{{ "{key:02d}", {length} }},'

def RegularLines(records: list[AiRecord], tab: str, first: int, limit: int, bucket: int) -> list[str]:
	out: list[str] = []
	lastBucket = None

	for record in records:
		if record.used or record.first < first or record.first >= limit:
			continue

		# separate the entries by their leading digit(s)
		if lastBucket is not None and record.first // bucket != lastBucket:
			out.append('')
		lastBucket = record.last // bucket

		# expand ranges to one entry per ai
		for key in record.keys():
			out.append(FormatEntry(tab, key, record.length))
	return out

def IrregularLines(records: list[AiRecord], tab: str) -> list[str]:
	out: list[str] = []
	prefixes: dict[int, int] = {}

	for record in records:
		if not any(record.first >= lower and record.first <= upper for (lower, upper) in irregularWindows):
			continue
		record.used = True

		# only the first ai of each prefix is written out, all others must agree with it
		prefix = record.first // 10
		if prefix in prefixes:
			if prefixes[prefix] != record.length:
				raise RuntimeError(f'Inconsistent lengths for AI prefix [{prefix}] encountered (irregular windows need to be revalidated)')
			continue
		prefixes[prefix] = record.length
		out.append(f'{tab}{{ "{prefix}", {record.length} }},')
	return out

def MakeAiInfos(records: list[AiRecord], tag: str, tab: str) -> str:
	print(f'Creating table [aiInfos] from [{len(records)}] records...', file=sys.stderr)
	if tag == '':
		tag = 'WARNING: tag not set!'
	out: list[str] = [f'// {dictionaryRepoURL} {tag}', 'static const AiInfo aiInfos[] = {']

	# the irregular pass must run before the four-digit table, as it consumes its ais
	twoDigit, threeDigit, fourDigit = regularTables
	out += [f'//{twoDigit[0]}'] + RegularLines(records, tab, *twoDigit[1:])
	out += ['', f'//{threeDigit[0]}'] + RegularLines(records, tab, *threeDigit[1:])
	out += ['', '//THREE_DIGIT_PLUS_DIGIT_DATA_LENGTH'] + IrregularLines(records, tab)
	out += ['', f'//{fourDigit[0]}'] + RegularLines(records, tab, *fourDigit[1:])
	out.append('};')
	return '\n'.join(out) + '\n'

# fetch the latest released dictionary tag (tags are named by their release date)
def FetchLatestTag() -> str:
	command = ['git', 'ls-remote', '--tags', '--sort=v:refname', dictionaryRepoURL]
	print(f'Fetching latest tag of [{dictionaryRepoURL}]...', file=sys.stderr)
	try:
		result = subprocess.run(command, capture_output=True, text=True, check=True)
	except (OSError, subprocess.CalledProcessError) as e:
		raise RuntimeError(f'Could not execute command [{" ".join(command)}]: {e}') from e

	lines = result.stdout.strip().split('\n')
	tag = lines[-1].strip().removesuffix('^{}')[-10:]
	if not tagRegex.match(tag):
		raise RuntimeError(f'Could not recognize tag [{tag}]')
	return tag

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

def main(argv: list[str]|None = None) -> int:
	parser = argparse.ArgumentParser(description='generates the aiInfos[] table of HRIFromGS1() from the GS1 syntax dictionary')
	parser.add_argument('-f', dest='file', default='', help='path or url of the syntax dictionary (default: latest release)')
	parser.add_argument('-t', dest='tab', default='\t', help='indentation of the table entries (default: tab)')
	args = parser.parse_args(argv)

	try:
		# resolve the latest release, if no file has been given
		tag, path = '', args.file
		if path == '':
			tag = FetchLatestTag()
			path = dictionaryFileURL.format(tag=tag)

		# parse all lines before producing any output
		records, fileTag = ParseAiLines(ReadSource(path))
		text = MakeAiInfos(records, (fileTag if tag == '' else tag), args.tab)
	except RuntimeError as e:
		print(f'gen_ai_infos: ERROR: {e}', file=sys.stderr)
		return 1
	sys.stdout.write(text)
	return 0

if __name__ == '__main__':
	sys.exit(main())
