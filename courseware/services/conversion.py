"""Normalization of office documents to PDF with LibreOffice."""

import logging
import os
import subprocess
import tempfile
from pathlib import Path

from courseware.errors import ConversionError

LOGGER = logging.getLogger(__name__)


class LibreOfficeConverter:
    """Runs ``soffice --headless --convert-to`` in a throwaway directory"""

    def __init__(self, binary='soffice', timeout=180):
        self.binary = binary
        self.timeout = timeout

    def version(self):
        """Return the LibreOffice version string, or None when it cannot be run"""
        try:
            result = subprocess.run([self.binary, '--version'], capture_output=True,
                                    text=True, timeout=30, check=True)
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, FileNotFoundError):
            return None
        return result.stdout.strip()

    def convert(self, data, target_format='pdf', source_extension='.bin'):
        with tempfile.TemporaryDirectory(prefix='courseware-convert-') as workdir:
            source_path = os.path.join(workdir, f"source{source_extension}")
            with open(source_path, 'wb') as f:
                f.write(data)

            # Private profile so parallel conversions do not fight over the user lock
            profile_uri = Path(workdir, 'profile').as_uri()
            cmd = [
                self.binary,
                '--headless',
                '--norestore',
                f'-env:UserInstallation={profile_uri}',
                '--convert-to', target_format,
                '--outdir', workdir,
                source_path,
            ]
            try:
                subprocess.run(cmd, capture_output=True, timeout=self.timeout, check=True)
            except FileNotFoundError as e:
                raise ConversionError(f"LibreOffice binary '{self.binary}' not found") from e
            except subprocess.TimeoutExpired as e:
                raise ConversionError(f"Conversion timed out after {self.timeout}s") from e
            except subprocess.CalledProcessError as e:
                stderr = (e.stderr or b'').decode('utf-8', errors='replace').strip()
                raise ConversionError(f"LibreOffice exited with {e.returncode}: {stderr}") from e

            output_path = os.path.join(workdir, f"source.{target_format}")
            if not os.path.isfile(output_path):
                raise ConversionError(f"LibreOffice produced no {target_format} output")
            with open(output_path, 'rb') as f:
                converted = f.read()

        LOGGER.info("Converted %s document to %s (%d bytes)", source_extension, target_format, len(converted))
        return converted
