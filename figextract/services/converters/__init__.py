"""Document conversion Package"""
from figextract.services.converters.command_runner import CommandResult, CommandRunner, SubprocessCommandRunner
from figextract.services.converters.document_converter import DocumentConverter

__all__ = [
    'CommandResult',
    'CommandRunner',
    'SubprocessCommandRunner',
    'DocumentConverter'
]
