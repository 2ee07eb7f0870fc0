"""
Interface to the external pairing engine.

The round manager only talks to ``run_pairing_engine``; which engine runs is
decided by ``settings.PAIRING_ENGINE_BACKEND``. The default backend shells out
to a bbpPairings compatible program:

    <command> --<dutch|burstein> <input.trf> -p <output>
"""

import logging
import os
import shlex
import shutil
import subprocess
import tempfile

from django.conf import settings
from django.utils.module_loading import import_string

from swisstour.tournament.exceptions import (
    ConfigurationError,
    EngineExecutionError,
    ValidationError,
)

logger = logging.getLogger(__name__)

PAIRING_SYSTEMS = ("dutch", "burstein")


def validate_system(system):
    if system not in PAIRING_SYSTEMS:
        raise ValidationError(
            "Unknown pairing system %r; expected one of: %s"
            % (system, ", ".join(PAIRING_SYSTEMS))
        )


class PairingEngine:
    """Turns a TRF document into the next round's pairings.

    Implementations return the raw engine output; decoding it is left to the
    caller.
    """

    def run(self, trf_input, system, tournament_id=None, round_number=None):
        raise NotImplementedError


class BbpPairingsEngine(PairingEngine):
    """Runs a bbpPairings compatible executable as a subprocess.

    Arguments:
    command -- executable path, optionally with leading arguments
               (e.g. "java -jar javafo.jar"); defaults to PAIRING_ENGINE_COMMAND
    timeout -- seconds to wait before the process is killed
    temp_dir -- where the exchange files are written; None for the system default
    """

    def __init__(self, command=None, timeout=None, temp_dir=None):
        self.command = command if command is not None else settings.PAIRING_ENGINE_COMMAND
        self.timeout = timeout if timeout is not None else settings.PAIRING_ENGINE_TIMEOUT
        self.temp_dir = (
            temp_dir
            if temp_dir is not None
            else getattr(settings, "PAIRING_ENGINE_TEMP_DIR", None)
        )

    def command_args(self):
        """Resolve the configured command to an argument list.

        Raises:
            ConfigurationError: if the executable is missing or not executable
        """
        args = shlex.split(self.command) if isinstance(self.command, str) else list(self.command)
        if not args:
            raise ConfigurationError("No pairing engine command is configured")
        executable = shutil.which(args[0])
        if executable is None:
            raise ConfigurationError(
                "Pairing engine not found or not executable at %s "
                "(set BBPPAIRINGS_PATH or PAIRING_ENGINE_COMMAND)" % args[0]
            )
        return [executable] + args[1:]

    def run(self, trf_input, system, tournament_id=None, round_number=None):
        validate_system(system)
        args = self.command_args()

        prefix = "tournament_%s_round_%s_" % (tournament_id, round_number)
        fd, input_file_name = tempfile.mkstemp(
            prefix=prefix, suffix=".trf", dir=self.temp_dir
        )
        output_file_name = input_file_name[: -len(".trf")] + "_output.trf"
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as input_file:
                input_file.write(trf_input)

            self._call_proc(
                args + ["--%s" % system, input_file_name, "-p", output_file_name]
            )
            return self._read_output(output_file_name)
        finally:
            for file_name in (input_file_name, output_file_name):
                try:
                    os.remove(file_name)
                except FileNotFoundError:
                    pass
                except OSError as e:
                    logger.warning("Could not remove pairing file %s: %s", file_name, e)

    def _call_proc(self, args):
        logger.info("Running pairing engine: %s", " ".join(shlex.quote(a) for a in args))
        try:
            proc = subprocess.run(
                args, capture_output=True, text=True, timeout=self.timeout
            )
        except subprocess.TimeoutExpired as e:
            raise EngineExecutionError(
                "Pairing engine timed out after %s seconds" % self.timeout,
                stdout=_as_text(e.stdout),
                stderr=_as_text(e.stderr),
            )
        except OSError as e:
            raise ConfigurationError("Pairing engine could not be started: %s" % e)

        if proc.stdout.strip():
            logger.info("Pairing engine output: %s", proc.stdout.strip())
        if proc.returncode != 0:
            logger.error(
                "Pairing engine failed with return code %s: %s",
                proc.returncode,
                proc.stderr.strip(),
            )
            raise EngineExecutionError(
                "Pairing engine return code: %s" % proc.returncode,
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        if proc.stderr.strip():
            logger.error("Pairing engine reported errors: %s", proc.stderr.strip())
            raise EngineExecutionError(
                "Pairing engine reported errors",
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )

    def _read_output(self, output_file_name):
        if not os.path.exists(output_file_name):
            raise EngineExecutionError(
                "Pairing engine exited successfully but wrote no output file"
            )
        try:
            with open(output_file_name, encoding="utf-8") as output_file:
                return output_file.read()
        except UnicodeDecodeError as e:
            raise EngineExecutionError(
                "Pairing engine output %s is not valid UTF-8: %s" % (output_file_name, e)
            )


def _as_text(output):
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output


def get_pairing_engine():
    """Instantiate the engine named by settings.PAIRING_ENGINE_BACKEND."""
    backend = settings.PAIRING_ENGINE_BACKEND
    try:
        engine_class = import_string(backend)
    except ImportError as e:
        raise ConfigurationError("Cannot load pairing engine backend %r: %s" % (backend, e))
    return engine_class()


def run_pairing_engine(trf_input, system, tournament_id=None, round_number=None):
    """Run the configured engine and return its raw output."""
    return get_pairing_engine().run(
        trf_input, system, tournament_id=tournament_id, round_number=round_number
    )
