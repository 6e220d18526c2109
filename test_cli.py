"""
PwdVault - CLI Tests

Drives pwdvault.cli.main() with scripted input()/getpass() answers against a
temporary vault file.
"""

import pyperclip
import pytest

from pwdvault import cli
from pwdvault.vault import Field, Vault
from pwdvault.master import MasterAuthenticator, MasterState

MASTER = "alpha-pass"
PHRASE = "correct horse"


def feed(monkeypatch, inputs=(), passwords=()):
    """Script the answers to input() and getpass.getpass(), in order."""
    inputs, passwords = iter(inputs), iter(passwords)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(inputs))
    monkeypatch.setattr("getpass.getpass", lambda prompt="": next(passwords))


@pytest.fixture
def db(tmp_path):
    """Path of a vault with MASTER already registered."""
    path = str(tmp_path / "vault.db")
    with Vault(path) as vault:
        MasterAuthenticator(vault).register(MASTER, MASTER, PHRASE)
    return path


def read(db, name, master=MASTER):
    with Vault(db) as vault:
        return vault.get_record(name, master)


def test_first_run_bootstraps_and_exits_nonzero(tmp_path, monkeypatch):
    path = str(tmp_path / "sub" / "vault.db")
    feed(monkeypatch, passwords=[MASTER, MASTER, PHRASE])

    assert cli.main(["--db", path, "list"]) == 1

    with Vault(path) as vault:
        auth = MasterAuthenticator(vault)
        assert auth.state is MasterState.REGISTERED
        assert auth.verify(MASTER)
        assert auth.verify_recovery_phrase(PHRASE)


def test_bootstrap_mismatch_saves_nothing(tmp_path, monkeypatch, capsys):
    path = str(tmp_path / "vault.db")
    feed(monkeypatch, passwords=[MASTER, MASTER + "x"])

    assert cli.main(["--db", path, "init"]) == 1
    assert "don't match" in capsys.readouterr().out

    with Vault(path) as vault:
        assert MasterAuthenticator(vault).state is MasterState.UNINITIALIZED


def test_short_master_rejected(tmp_path, monkeypatch):
    path = str(tmp_path / "vault.db")
    feed(monkeypatch, passwords=["short", "short"])

    assert cli.main(["--db", path, "init"]) == 1
    with Vault(path) as vault:
        assert MasterAuthenticator(vault).state is MasterState.UNINITIALIZED


def test_init_when_registered(db, monkeypatch, capsys):
    feed(monkeypatch)
    assert cli.main(["--db", db, "init"]) == 1
    assert "already set" in capsys.readouterr().out


def test_wrong_master_exits_nonzero(db, monkeypatch, capsys):
    feed(monkeypatch, passwords=["wrong"])
    assert cli.main(["--db", db, "list"]) == 1
    assert "Incorrect password" in capsys.readouterr().out


def test_add_generated_then_get(db, monkeypatch, capsys):
    feed(monkeypatch, inputs=["a@b.com", "", "my notes"], passwords=[MASTER])
    assert cli.main(["--db", db, "add", "github", "--generate", "--length", "20", "--no-symbols"]) == 0

    record = read(db, "github")
    assert record.email == "a@b.com"
    assert record.username is None
    assert record.notes == "my notes"
    assert len(record.secret) == 20 and record.secret.isalnum()

    capsys.readouterr()
    feed(monkeypatch, passwords=[MASTER])
    assert cli.main(["--db", db, "get", "github"]) == 0
    out = capsys.readouterr().out
    assert "email: a@b.com" in out
    assert "No data found for username" in out
    assert f"secret: {record.secret}" in out


def test_add_manual_secret(db, monkeypatch):
    feed(monkeypatch, inputs=["", "bob", ""], passwords=[MASTER, "typed-pw", "typed-pw"])
    assert cli.main(["--db", db, "add", "forum", "--manual"]) == 0

    record = read(db, "forum")
    assert record.username == "bob"
    assert record.secret == "typed-pw"


def test_add_existing_declined(db, monkeypatch):
    with Vault(db) as vault:
        vault.upsert_field("github", Field.EMAIL, "old@b.com", MASTER)

    feed(monkeypatch, inputs=["n"], passwords=[MASTER])
    assert cli.main(["--db", db, "add", "github", "--no-secret"]) == 0
    assert read(db, "github").email == "old@b.com"


def test_update_keeps_empty_fields(db, monkeypatch):
    with Vault(db) as vault:
        vault.put_record("github", MASTER, email="old@b.com", secret="pw")

    feed(monkeypatch, inputs=["new@b.com", "", "", "0"], passwords=[MASTER])
    assert cli.main(["--db", db, "update", "github"]) == 0

    record = read(db, "github")
    assert record.email == "new@b.com"
    assert record.secret == "pw"


def test_update_missing_record(db, monkeypatch, capsys):
    feed(monkeypatch, passwords=[MASTER])
    assert cli.main(["--db", db, "update", "nope"]) == 1
    assert "No record named" in capsys.readouterr().out


def test_get_copy_does_not_print_secret(db, monkeypatch, capsys):
    with Vault(db) as vault:
        vault.put_record("github", MASTER, secret="s3cr3t-value")

    copied = []
    monkeypatch.setattr(cli.pyperclip, "copy", copied.append)
    feed(monkeypatch, passwords=[MASTER])

    assert cli.main(["--db", db, "get", "github", "--copy"]) == 0
    assert copied == ["s3cr3t-value"]
    assert "s3cr3t-value" not in capsys.readouterr().out


def test_get_copy_without_clipboard(db, monkeypatch, capsys):
    with Vault(db) as vault:
        vault.put_record("github", MASTER, email="a@b.com", secret="s3cr3t-value")

    def no_clipboard(text):
        raise pyperclip.PyperclipException("no clipboard mechanism")

    monkeypatch.setattr(cli.pyperclip, "copy", no_clipboard)
    feed(monkeypatch, passwords=[MASTER])

    assert cli.main(["--db", db, "get", "github", "--copy"]) == 1
    out = capsys.readouterr().out
    assert "Clipboard unavailable" in out
    assert "email: a@b.com" in out
    assert "s3cr3t-value" not in out


def test_get_missing(db, monkeypatch, capsys):
    feed(monkeypatch, passwords=[MASTER])
    assert cli.main(["--db", db, "get", "nothing"]) == 0
    assert "No record was found" in capsys.readouterr().out


def test_get_undecryptable_record(db, monkeypatch, capsys):
    with Vault(db) as vault:
        vault.put_record("site", "another-master", email="a@b.com", username="bob")

    feed(monkeypatch, passwords=[MASTER])
    assert cli.main(["--db", db, "get", "site"]) == 1
    out = capsys.readouterr().out
    assert "Could not decrypt 'site'" in out
    assert "a@b.com" not in out
    assert "email" not in out and "username" not in out


def test_list(db, monkeypatch, capsys):
    with Vault(db) as vault:
        vault.upsert_field("zeta", Field.NOTES, "n", MASTER)
        vault.upsert_field("alpha", Field.NOTES, "n", MASTER)

    feed(monkeypatch, passwords=[MASTER])
    assert cli.main(["--db", db, "list"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == ["alpha", "zeta"]


def test_delete(db, monkeypatch):
    with Vault(db) as vault:
        vault.upsert_field("github", Field.EMAIL, "a@b.com", MASTER)

    feed(monkeypatch, inputs=["n"], passwords=[MASTER])
    assert cli.main(["--db", db, "delete", "github"]) == 0
    assert read(db, "github") is not None

    feed(monkeypatch, passwords=[MASTER])
    assert cli.main(["--db", db, "delete", "github", "--yes"]) == 0
    assert read(db, "github") is None


def test_rename(db, monkeypatch):
    with Vault(db) as vault:
        vault.upsert_field("old", Field.EMAIL, "a@b.com", MASTER)

    feed(monkeypatch, passwords=[MASTER])
    assert cli.main(["--db", db, "rename", "old", "new"]) == 0
    assert read(db, "old") is None
    assert read(db, "new").email == "a@b.com"


def test_reserved_name_is_an_error(db, monkeypatch, capsys):
    feed(monkeypatch, passwords=[MASTER])
    assert cli.main(["--db", db, "delete", ".master", "--yes"]) == 1
    assert "reserved" in capsys.readouterr().out


def test_reset(db, monkeypatch, capsys):
    with Vault(db) as vault:
        vault.upsert_field("github", Field.EMAIL, "a@b.com", MASTER)

    feed(monkeypatch, passwords=[PHRASE, "beta-pass", "beta-pass"])
    assert cli.main(["--db", db, "reset"]) == 0
    assert "cannot be read with the new one" in capsys.readouterr().out

    with Vault(db) as vault:
        auth = MasterAuthenticator(vault)
        assert auth.verify("beta-pass")
        assert not auth.verify(MASTER)


def test_reset_wrong_phrase(db, monkeypatch):
    feed(monkeypatch, passwords=["not the phrase"])
    assert cli.main(["--db", db, "reset"]) == 1

    with Vault(db) as vault:
        assert MasterAuthenticator(vault).verify(MASTER)


def test_reset_short_password(db, monkeypatch, capsys):
    feed(monkeypatch, passwords=[PHRASE, "short", "short"])
    assert cli.main(["--db", db, "reset"]) == 1
    assert "Too short" in capsys.readouterr().out

    with Vault(db) as vault:
        auth = MasterAuthenticator(vault)
        assert auth.verify(MASTER)
        assert not auth.verify("short")


def test_interactive_menu(db, monkeypatch, capsys):
    feed(
        monkeypatch,
        inputs=[
            "1", "github", "a@b.com", "", "", "0",   # add, no password
            "4",                                     # list
            "6", "github", "gh",                     # rename
            "2", "gh",                               # get
            "0",
        ],
        passwords=[MASTER],
    )
    assert cli.main(["--db", db, "--interactive"]) == 0

    out = capsys.readouterr().out
    assert "email: a@b.com" in out
    assert read(db, "gh").email == "a@b.com"


def test_no_command_prints_help(monkeypatch, capsys):
    assert cli.main([]) == 1
    assert "usage" in capsys.readouterr().out
