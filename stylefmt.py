#!/usr/bin/env python3

import dataclasses
import logging
import pathlib
import sys
import typing

import libcst as cst
import libcst.metadata
from libcst.codemod import CodemodContext
from libcst.codemod.commands.remove_unused_imports import RemoveUnusedImportsCommand

import config
from formatting_options import FormattingOptions

logger = logging.getLogger(__name__)

USAGE = ('Usage: stylefmt [--dropbox-style | --google-style | --kotlinlang-style] [--dry-run]'
		' [--set-exit-if-changed] [--stdin-name=<name>] [--do-not-remove-unused-imports]'
		' File1.py File2.py ...')
SOURCE_SUFFIXES = ('.py', '.pyi')
MAX_SPLIT_DEPTH = 5
# failures that skip one file but let the run continue
FORMAT_ERRORS = (OSError, UnicodeError, SyntaxError, cst.ParserSyntaxError)

def main() -> None:
	setup_logging()
	sys.exit(run(sys.argv[1:]))

def setup_logging() -> None:
	logging.basicConfig(level=logging.INFO, format='%(message)s', stream=sys.stderr)

def run(args: typing.Sequence[str], stdin: typing.Optional[typing.BinaryIO] = None,
		stdout: typing.Optional[typing.TextIO] = None) -> int:
	'''formats the files named in args and returns the process exit code'''
	if stdin is None:
		stdin = sys.stdin.buffer
	if stdout is None:
		stdout = sys.stdout

	result = config.process_args(args)
	if isinstance(result, config.Error):
		logger.error(result.error_message)
		return 1
	parsed_args = result.parsed_value

	if not parsed_args.file_names:
		logger.error(USAGE)
		logger.error('Or: stylefmt @file')
		return 1

	if parsed_args.file_names == [config.STDIN_MARKER]:
		try:
			already_formatted = format_file(None, parsed_args, stdin, stdout)
		except FORMAT_ERRORS:
			return 1
		return 1 if not already_formatted and parsed_args.set_exit_if_changed else 0

	paths = expand_args_to_file_names(parsed_args.file_names)
	if not paths:
		logger.error('Error: no .py files found')
		return 1

	retval = 0
	for path in paths:
		try:
			if not format_file(path, parsed_args, stdin, stdout) and parsed_args.set_exit_if_changed:
				retval = 1
		except FORMAT_ERRORS:
			retval = 1
	return retval

def expand_args_to_file_names(args: typing.Sequence[str]) -> list[pathlib.Path]:
	# a lone existing file is formatted whatever its suffix
	if len(args) == 1 and pathlib.Path(args[0]).is_file():
		return [pathlib.Path(args[0])]

	found: dict[pathlib.Path, None] = {}
	for arg in args:
		root = pathlib.Path(arg)
		if root.is_file():
			candidates = [root]
		elif root.is_dir():
			candidates = sorted(root.rglob('*'))
		else:
			continue
		for path in candidates:
			if path.is_file() and path.suffix in SOURCE_SUFFIXES:
				found[path] = None
	return list(found)

def format_file(path: typing.Optional[pathlib.Path], parsed_args: config.ParsedArgs,
		stdin: typing.BinaryIO, stdout: typing.TextIO) -> bool:
	'''
	formats one file, or stdin when path is None

	returns whether the code was already formatted
	'''
	if path is not None:
		file_name = str(path)
	elif parsed_args.stdin_name is not None:
		file_name = parsed_args.stdin_name
	else:
		file_name = '<stdin>'

	try:
		code = stdin.read() if path is None else path.read_bytes()
		module = format_module(code, parsed_args.formatting_options)
		formatted = module.bytes
		already_formatted = code == formatted
		if parsed_args.dry_run:
			if not already_formatted:
				print(file_name, file=stdout)
		elif path is None:
			# decoded with the source's own encoding, not utf-8
			print(module.code, end='', file=stdout)
		else:
			if not already_formatted:
				path.write_bytes(formatted)
			logger.info(f'Done formatting {file_name}')
		return already_formatted
	except OSError as e:
		logger.error(f'Error formatting {file_name}: {e.strerror or e}; skipping.')
		raise
	except cst.ParserSyntaxError as e:
		logger.error(f'{file_name}:{e.raw_line}:{e.raw_column + 1}: error: {e.message}')
		raise
	except (SyntaxError, UnicodeError) as e:
		# undecodable source, or a bad coding declaration
		logger.error(f'Error formatting {file_name}: {e}; skipping.')
		raise

def beautify(source: bytes, options: FormattingOptions) -> bytes:
	return format_module(source, options).bytes

def format_module(source: bytes, options: FormattingOptions) -> cst.Module:
	module = cst.parse_module(source).with_changes(default_indent=' ' * options.block_indent)
	if options.remove_unused_imports:
		module = RemoveUnusedImportsCommand(CodemodContext()).transform_module(module)
	return cst.MetadataWrapper(module).visit(TreeBeautifier(options))

SPACE = cst.SimpleWhitespace(' ')
NO_SPACE = cst.SimpleWhitespace('')

def _indented_newline(indent: str) -> cst.ParenthesizedWhitespace:
	return cst.ParenthesizedWhitespace(cst.TrailingWhitespace(newline=cst.Newline()), indent=True,
		last_line=cst.SimpleWhitespace(indent))

def _whitespace(node: cst.CSTNodeT, **spaced: bool) -> cst.CSTNodeT:
	'''sets each named whitespace field to one space if True, to nothing if False'''
	return node.with_changes(**{name: SPACE if on else NO_SPACE for name, on in spaced.items()})

class TreeBeautifier(cst.CSTTransformer):
	METADATA_DEPENDENCIES = (libcst.metadata.ExperimentalReentrantCodegenProvider,)

	def __init__(self, options: FormattingOptions) -> None:
		self.options = options
		self.block_indent = ' ' * options.block_indent

	def leave_SimpleStatementLine(self, orig, node: cst.SimpleStatementLine) -> cst.SimpleStatementLine:
		codegen = self.get_metadata(libcst.metadata.ExperimentalReentrantCodegenProvider, orig)
		context = FormatContext(depth=0, split_depth=0, continuation=' ' * self.options.continuation_indent,
				trailing_comma=self.options.trailing_comma)
		while (context.split_depth < MAX_SPLIT_DEPTH and
				_width(codegen.get_modified_statement_code(node)) > self.options.max_width):
			context = context.incr_split_depth()
			node = node.with_changes(body=[_format_node(child, context) for child in node.body])
		return node

	def leave_IndentedBlock(self, orig, node: cst.IndentedBlock) -> cst.IndentedBlock:
		return node.with_changes(indent=self.block_indent)

	def leave_Comma(self, orig, node: cst.Comma) -> cst.Comma:
		return _whitespace(node, whitespace_before=False, whitespace_after=True)

	def leave_AssignEqual(self, orig, node: cst.AssignEqual) -> cst.AssignEqual:
		return _whitespace(node, whitespace_before=False, whitespace_after=False)

	def leave_LeftCurlyBrace(self, orig, node: cst.LeftCurlyBrace) -> cst.LeftCurlyBrace:
		return _whitespace(node, whitespace_after=False)

	def leave_RightCurlyBrace(self, orig, node: cst.RightCurlyBrace) -> cst.RightCurlyBrace:
		return _whitespace(node, whitespace_before=False)

	def leave_DictElement(self, orig, node: cst.DictElement) -> cst.DictElement:
		return _whitespace(node, whitespace_before_colon=False, whitespace_after_colon=True)

	def leave_If(self, orig, node: cst.If) -> cst.If:
		return _whitespace(node, whitespace_after_test=False)

@dataclasses.dataclass(eq=False, frozen=True)
class FormatContext:
	depth: int
	split_depth: int
	# one level of continuation indent
	continuation: str
	trailing_comma: bool

	def incr_depth(self) -> 'FormatContext':
		return dataclasses.replace(self, depth=self.depth + 1)

	def incr_split_depth(self) -> 'FormatContext':
		return dataclasses.replace(self, split_depth=self.split_depth + 1)

def _format_node(node: cst.CSTNode, context: FormatContext) -> cst.CSTNode:
	if isinstance(node, cst.Dict):
		context = context.incr_depth()
		if context.depth == context.split_depth and len(node.elements) > 0:
			newline = _indented_newline(context.continuation * context.depth)
			return node.with_changes(elements=_split_elements(node.elements, newline, context.trailing_comma),
				lbrace=cst.LeftCurlyBrace(whitespace_after=newline),
				rbrace=cst.RightCurlyBrace(whitespace_before=_indented_newline(context.continuation * (context.depth - 1))))
		else:
			return node.with_changes(elements=[_format_node(element, context) for element in node.elements])
	elif isinstance(node, cst.List):
		context = context.incr_depth()
		if context.depth == context.split_depth and len(node.elements) > 0:
			newline = _indented_newline(context.continuation * context.depth)
			return node.with_changes(elements=_split_elements(node.elements, newline, context.trailing_comma),
				lbracket=cst.LeftSquareBracket(whitespace_after=newline),
				rbracket=cst.RightSquareBracket(whitespace_before=_indented_newline(context.continuation * (context.depth - 1))))
		else:
			return node.with_changes(elements=[_format_node(element, context) for element in node.elements])
	elif isinstance(node, (cst.Element, cst.DictElement)):
		return node.with_changes(value=_format_node(node.value, context))
	elif isinstance(node, cst.Assign):
		return node.with_changes(value=_format_node(node.value, context))
	else:
		return node

Elements = typing.Sequence[typing.Union[cst.BaseElement, cst.BaseDictElement]]
def _split_elements(elements: Elements, newline: cst.ParenthesizedWhitespace, trailing_comma: bool) -> Elements:
	last_comma = cst.Comma() if trailing_comma else cst.MaybeSentinel.DEFAULT
	commas = [cst.Comma(whitespace_after=newline)] * (len(elements) - 1) + [last_comma]
	return [element.with_changes(comma=comma) for element, comma in zip(elements, commas)]

def _width(formatted: str) -> int:
	# tabs count as four columns
	return max(len(line.expandtabs(4)) for line in formatted.split('\n'))

if __name__ == '__main__':
	main()
