import dataclasses
import enum

class Style(enum.Enum):
	FACEBOOK = 'facebook'
	DROPBOX = 'dropbox'
	GOOGLE = 'google'

@dataclasses.dataclass(frozen=True)
class FormattingOptions:
	style: Style = Style.FACEBOOK
	max_width: int = 100
	# spaces per nested block
	block_indent: int = 2
	# spaces per level when a display is split over several lines
	continuation_indent: int = 4
	remove_unused_imports: bool = True

	@property
	def trailing_comma(self) -> bool:
		'''whether a display split one element per line keeps a comma after its last element'''
		return self.style is not Style.DROPBOX

DEFAULT_FORMAT = FormattingOptions()
DROPBOX_FORMAT = FormattingOptions(style=Style.DROPBOX, block_indent=4, continuation_indent=4)
GOOGLE_FORMAT = FormattingOptions(style=Style.GOOGLE, block_indent=2, continuation_indent=2)
KOTLINLANG_FORMAT = FormattingOptions(style=Style.GOOGLE, block_indent=4, continuation_indent=4)
