import dataclasses
import pathlib
import typing

import formatting_options
from formatting_options import FormattingOptions

STDIN_MARKER = '-'
STDIN_NAME_KEY = '--stdin-name'

_PRESETS = {
	'--dropbox-style': formatting_options.DROPBOX_FORMAT,
	'--google-style': formatting_options.GOOGLE_FORMAT,
	'--kotlinlang-style': formatting_options.KOTLINLANG_FORMAT,
}

@dataclasses.dataclass(frozen=True)
class ParsedArgs:
	file_names: list[str]
	formatting_options: FormattingOptions
	# print the files that would change instead of rewriting them
	dry_run: bool
	# exit with 1 if any formatting changes are detected
	set_exit_if_changed: bool
	# file name to report when formatting code from stdin
	stdin_name: typing.Optional[str]

@dataclasses.dataclass(frozen=True)
class Ok:
	parsed_value: ParsedArgs

@dataclasses.dataclass(frozen=True)
class Error:
	error_message: str

ParseResult = typing.Union[Ok, Error]

def process_args(args: typing.Sequence[str]) -> ParseResult:
	'''parses args, or the lines of the file named by a lone @-prefixed argument'''
	if len(args) == 1 and args[0].startswith('@'):
		# only \n, \r and \r\n end a line; other separators stay in the argument
		with pathlib.Path(args[0][1:]).open(encoding='utf-8') as f:
			args = [line.rstrip('\n') for line in f]
	return parse_options(args)

def parse_options(args: typing.Sequence[str]) -> ParseResult:
	file_names: list[str] = []
	options = formatting_options.DEFAULT_FORMAT
	dry_run = False
	set_exit_if_changed = False
	remove_unused_imports = True
	stdin_name: typing.Optional[str] = None

	for arg in args:
		if arg in _PRESETS:
			options = _PRESETS[arg]
		elif arg in ('--dry-run', '-n'):
			dry_run = True
		elif arg == '--set-exit-if-changed':
			set_exit_if_changed = True
		elif arg == '--do-not-remove-unused-imports':
			remove_unused_imports = False
		elif arg.startswith(STDIN_NAME_KEY + '='):
			stdin_name = _parse_key_value_arg(STDIN_NAME_KEY, arg)
			if stdin_name is None:
				return Error(f"Found option '{arg}', expected '{STDIN_NAME_KEY}=<value>'")
		elif arg.startswith('--'):
			return Error(f'Unexpected option: {arg}')
		elif arg.startswith('@'):
			return Error(f'Unexpected option: {arg}')
		else:
			file_names.append(arg)

	if STDIN_MARKER in file_names:
		if len(file_names) > 1:
			files_except_stdin = list(file_names)
			files_except_stdin.remove(STDIN_MARKER)
			return Error("Cannot read from stdin and files in same run. Found stdin specifier '-'"
					f" and files {', '.join(files_except_stdin)} ")
	elif stdin_name is not None:
		return Error(f'{STDIN_NAME_KEY} can only be specified when reading from stdin')

	return Ok(ParsedArgs(file_names, dataclasses.replace(options, remove_unused_imports=remove_unused_imports),
			dry_run, set_exit_if_changed, stdin_name))

def _parse_key_value_arg(key: str, arg: str) -> typing.Optional[str]:
	# any value after '=' is accepted, even when the key differs
	parts = arg.split('=', 1)
	if parts[0] == key or len(parts) == 2:
		return parts[1] if len(parts) == 2 else None
	return None
