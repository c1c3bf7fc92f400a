import io
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from sshpass_net.config import ToolConfig
from sshpass_net.errors import CredentialError, SSHConnectionError
from sshpass_net.request import CredentialSource, InvocationRequest
from sshpass_net.runner import SessionRunner, read_password_file
from sshpass_net.ssh import SSHSession

from fakes import FakeChannel, FakeSSHClient


def make_request(source=CredentialSource.STDIN, secret="", **overrides) -> InvocationRequest:
    values = dict(
        source=source,
        secret=secret,
        user="root",
        host="example.com",
        command_tokens=("whoami",),
    )
    values.update(overrides)
    return InvocationRequest(**values)


class ResolveCredentialsTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.stderr = io.StringIO()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def runner(self, stdin="", **kwargs) -> SessionRunner:
        return SessionRunner(
            ToolConfig(), stdin=io.StringIO(stdin), stderr=self.stderr, **kwargs
        )

    def test_stdin_prompts_and_reads_one_line(self) -> None:
        credentials = self.runner("hunter2\nnext\n").resolve_credentials(make_request())
        self.assertEqual(credentials.password, "hunter2")
        self.assertEqual(credentials.auth_method, "password")
        self.assertEqual(self.stderr.getvalue(), "root@example.com's password: ")

    def test_stdin_quiet_suppresses_prompt(self) -> None:
        credentials = self.runner("pw\n").resolve_credentials(make_request(quiet=True))
        self.assertEqual(credentials.password, "pw")
        self.assertEqual(self.stderr.getvalue(), "")

    def test_stdin_empty_input_is_empty_password(self) -> None:
        for stdin in ["", "\n", "\r\n"]:
            with self.subTest(stdin=stdin):
                credentials = self.runner(stdin).resolve_credentials(
                    make_request(quiet=True)
                )
                self.assertEqual(credentials.password, "")

    def test_file_uses_first_line(self) -> None:
        path = self.tmp / "pass.txt"
        path.write_text("s3cr3t\nignored\n")
        credentials = self.runner().resolve_credentials(
            make_request(CredentialSource.FILE, str(path))
        )
        self.assertEqual(credentials.password, "s3cr3t")

    def test_file_without_trailing_newline(self) -> None:
        path = self.tmp / "pass.txt"
        path.write_text("s3cr3t")
        self.assertEqual(read_password_file(str(path)), "s3cr3t")

    def test_empty_file_is_credential_error(self) -> None:
        path = self.tmp / "empty.txt"
        path.write_text("")
        with self.assertRaises(CredentialError) as ctx:
            read_password_file(str(path))
        self.assertEqual(str(ctx.exception), f"File {path} had no data.")

    def test_missing_file_is_credential_error(self) -> None:
        with self.assertRaises(CredentialError):
            self.runner().resolve_credentials(
                make_request(CredentialSource.FILE, str(self.tmp / "missing"))
            )

    def test_literal_and_env_passwords_used_verbatim(self) -> None:
        for source in (CredentialSource.PASSWORD, CredentialSource.ENV):
            with self.subTest(source=source):
                credentials = self.runner().resolve_credentials(
                    make_request(source, " pass word ", envvar="SSHPASS")
                )
                self.assertEqual(credentials.password, " pass word ")

    def test_key_defaults_to_home_id_rsa(self) -> None:
        loader = mock.Mock(return_value="PKEY")
        with mock.patch.object(Path, "home", return_value=self.tmp):
            credentials = self.runner(key_loader=loader).resolve_credentials(
                make_request(CredentialSource.KEY, "")
            )
        expected = self.tmp / ".ssh" / "id_rsa"
        loader.assert_called_once_with(expected)
        self.assertEqual(credentials.auth_method, "key")
        self.assertEqual(credentials.key_path, str(expected))
        self.assertEqual(credentials.pkey, "PKEY")
        self.assertIsNone(credentials.password)

    def test_key_uses_given_path(self) -> None:
        loader = mock.Mock(return_value="PKEY")
        self.runner(key_loader=loader).resolve_credentials(
            make_request(CredentialSource.KEY, "/keys/deploy")
        )
        loader.assert_called_once_with(Path("/keys/deploy"))

    def test_key_default_from_config(self) -> None:
        loader = mock.Mock(return_value="PKEY")
        runner = SessionRunner(
            ToolConfig(default_key_path="/etc/keys/id_ed25519"), key_loader=loader
        )
        runner.resolve_credentials(make_request(CredentialSource.KEY, ""))
        loader.assert_called_once_with(Path("/etc/keys/id_ed25519"))

    def test_key_load_failure_propagates(self) -> None:
        loader = mock.Mock(side_effect=CredentialError("not a valid key"))
        with self.assertRaises(CredentialError):
            self.runner(key_loader=loader).resolve_credentials(
                make_request(CredentialSource.KEY, "/keys/broken")
            )

    def test_config_port_and_timeout_applied(self) -> None:
        runner = SessionRunner(ToolConfig(port=2222, connect_timeout=3.5))
        credentials = runner.resolve_credentials(
            make_request(CredentialSource.PASSWORD, "pw")
        )
        self.assertEqual(credentials.port, 2222)
        self.assertEqual(credentials.timeout, 3.5)


class SessionRunnerRunTests(unittest.TestCase):
    def test_connects_runs_and_closes_once(self) -> None:
        client = FakeSSHClient(channel=FakeChannel(stdout=[b"root\n"]))
        out = io.StringIO()
        runner = SessionRunner(
            ToolConfig(),
            session_factory=lambda creds: SSHSession(creds, client_factory=lambda: client),
            stdout=out,
            stderr=io.StringIO(),
        )
        result = runner.run(
            make_request(CredentialSource.PASSWORD, "pw", command_tokens=("'ls", "-la'"))
        )
        self.assertEqual(client.events, ["connect", "exec", "close"])
        self.assertEqual(client.commands, ["ls -la"])
        self.assertEqual(result.stdout, "root\n")
        self.assertEqual(out.getvalue(), "root\n")

    def test_nonzero_remote_status_is_not_an_error(self) -> None:
        client = FakeSSHClient(channel=FakeChannel(stderr=[b"boom\n"], status=2))
        err = io.StringIO()
        runner = SessionRunner(
            ToolConfig(),
            session_factory=lambda creds: SSHSession(creds, client_factory=lambda: client),
            stdout=io.StringIO(),
            stderr=err,
        )
        result = runner.run(make_request(CredentialSource.PASSWORD, "pw"))
        self.assertEqual(result.exit_status, 2)
        self.assertEqual(err.getvalue(), "boom\n")

    def test_connection_failure_skips_command(self) -> None:
        client = FakeSSHClient(connect_error=OSError("No route to host"))
        runner = SessionRunner(
            ToolConfig(),
            session_factory=lambda creds: SSHSession(creds, client_factory=lambda: client),
        )
        with self.assertRaises(SSHConnectionError):
            runner.run(make_request(CredentialSource.PASSWORD, "pw"))
        self.assertEqual(client.events, ["connect", "close"])
        self.assertEqual(client.commands, [])


if __name__ == "__main__":
    unittest.main()
