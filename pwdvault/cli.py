"""
PwdVault - Command-Line Interface

Thin frontend over Vault and MasterAuthenticator: prompts, output and
exit codes live here, nothing cryptographic does.

Exit status:
    0  success
    1  first-run setup done, authentication failed, or an error occurred
"""

import sys
import getpass
import logging
import argparse
from typing import List, Optional

import pyperclip

from . import config
from .crypto import generate_password
from .master import MasterAuthenticator, MasterState
from .vault import CredentialRecord, Field, Vault
from .errors import (
    AuthenticationFailure,
    DecodeError,
    EncodingError,
    RecordNotFound,
    VaultError,
)

logger = logging.getLogger(__name__)

FIELD_PROMPTS = [
    (Field.EMAIL, "Email", "example@domain.com"),
    (Field.USERNAME, "Username", "example_username"),
    (Field.NOTES, "Notes", "any text here"),
]


# =============================================================================
# Prompt helpers
# =============================================================================

def confirm(question: str) -> bool:
    return input(f"{question} [y/N]: ").strip().lower() in ('y', 'yes')


def confirmed_password(label: str = "password") -> str:
    """Ask twice until both entries match."""
    while True:
        pw = getpass.getpass(f"Enter new {label}: ")
        pw2 = getpass.getpass(f"Confirm new {label}: ")
        if pw != pw2:
            print("Passwords don't match.\n")
            continue
        return pw


def prompt_secret(args: argparse.Namespace) -> Optional[str]:
    """Generated, typed, or no password at all."""
    mode = args.mode
    if mode is None:
        print("\nPassword:")
        print("  1) Generate a password for me (recommended)")
        print("  2) I'll type one myself")
        print("  0) Don't save a password")
        choice = input("> ").strip()
        mode = {'1': 'generate', '2': 'manual'}.get(choice, 'none')

    if mode == 'generate':
        length = args.length
        if length is None:
            try:
                length = int(input(f"Password length [{config.DEFAULT_PASSWORD_LENGTH}]: ").strip()
                             or config.DEFAULT_PASSWORD_LENGTH)
            except ValueError:
                length = config.DEFAULT_PASSWORD_LENGTH
        return generate_password(length, use_symbols=not args.no_symbols)
    if mode == 'manual':
        return confirmed_password()
    return None


def prompt_fields(args: argparse.Namespace) -> dict:
    """Collect optional field values. Empty input leaves a field untouched."""
    values = {}
    for field, label, placeholder in FIELD_PROMPTS:
        values[field.value] = input(f"{label} (optional, e.g. {placeholder}): ").strip()
    values[Field.SECRET.value] = prompt_secret(args)
    return values


def format_record(record: CredentialRecord, secret_note: Optional[str] = None) -> str:
    lines = [f"  Name: {record.name}"]
    for field in Field:
        value = record.get(field)
        if value is None:
            lines.append(f"  No data found for {field.value}")
        elif field is Field.SECRET and secret_note:
            lines.append(f"  {field.value}: {secret_note}")
        else:
            lines.append(f"  {field.value}: {value}")
    return "\n".join(lines)


# =============================================================================
# Master password
# =============================================================================

def cmd_init(auth: MasterAuthenticator) -> int:
    """First run: set the master password, then end the session."""
    print("=== Set Master Password ===\n")
    print("No master password found. Choose one now.")
    pw = getpass.getpass("Enter master password: ")
    pw2 = getpass.getpass("Confirm: ")
    if pw != pw2:
        print("Passwords don't match. Nothing was saved.")
        return 1
    if len(pw) < config.MIN_MASTER_LENGTH:
        print(f"Too short (min {config.MIN_MASTER_LENGTH} chars). Nothing was saved.")
        return 1

    print("\nRecovery phrase: this is the ONLY way to reset your master password.")
    phrase = getpass.getpass("Recovery phrase (optional): ")
    auth.register(pw, pw2, phrase or None)

    print("\n✓ Master password set. Run the command again to log in.")
    return 1


def cmd_reset(auth: MasterAuthenticator) -> int:
    print("=== Reset Master Password ===\n")
    phrase = getpass.getpass("Recovery phrase: ")
    if not auth.verify_recovery_phrase(phrase):
        print("Incorrect recovery phrase. Exiting...")
        return 1

    pw = confirmed_password("master password")
    if len(pw) < config.MIN_MASTER_LENGTH:
        print(f"Too short (min {config.MIN_MASTER_LENGTH} chars). Nothing was changed.")
        return 1
    auth.reset(phrase, pw, pw)
    print("\n✓ Updated master password!")
    if auth.vault.count():
        print("WARNING: records saved before this reset were encrypted with the old")
        print("master password and cannot be read with the new one.")
    return 0


def login(auth: MasterAuthenticator) -> str:
    """Raises AuthenticationFailure on a wrong password."""
    return auth.login(getpass.getpass("Master password: "))


# =============================================================================
# Record commands
# =============================================================================

def cmd_add(vault: Vault, master: str, args: argparse.Namespace) -> int:
    name = args.name
    if vault.exists(name):
        if not confirm("A record already exists with this name. Update it?"):
            print("Cancelled.")
            return 0
        print("Leave a field empty to keep its current value.\n")
    else:
        print("This name is available. Continuing will create a new record.\n")
    return _save(vault, master, name, args)


def cmd_update(vault: Vault, master: str, args: argparse.Namespace) -> int:
    if not vault.exists(args.name):
        raise RecordNotFound(f"No record named {args.name!r}")
    print("Leave a field empty to keep its current value.\n")
    return _save(vault, master, args.name, args)


def _save(vault: Vault, master: str, name: str, args: argparse.Namespace) -> int:
    values = prompt_fields(args)
    written = vault.put_record(name, master, **values)
    if written:
        print(f"\n✓ Saved {written} field(s) to '{name}'.")
    else:
        print("\nNothing to save.")
    return 0


def cmd_get(vault: Vault, master: str, args: argparse.Namespace) -> int:
    try:
        record = vault.get_record(args.name, master)
    except (AuthenticationFailure, DecodeError, EncodingError) as e:
        # One message for the whole record: which field failed is not shown.
        print(f"ERROR: Could not decrypt '{args.name}' ({type(e).__name__}).")
        return 1

    if record is None:
        print("No record was found with that name.")
        return 0

    if not (args.copy and record.secret is not None):
        print(format_record(record))
        return 0

    try:
        pyperclip.copy(record.secret)
    except pyperclip.PyperclipException:
        print("Clipboard unavailable: password not copied.")
        print(format_record(record, secret_note="(hidden)"))
        return 1
    print(format_record(record, secret_note="(copied to clipboard)"))
    return 0


def cmd_list(vault: Vault, master: str, args: argparse.Namespace) -> int:
    names = vault.list_names()
    if not names:
        print("No records.")
    for name in names:
        print(name)
    return 0


def cmd_delete(vault: Vault, master: str, args: argparse.Namespace) -> int:
    if not vault.exists(args.name):
        print("No record found with that name.")
        return 0

    print("You are about to delete a record. This CANNOT be undone and there is")
    print("NO backup. Save anything you need from it first.")
    if not args.yes and not confirm(f"Delete '{args.name}'?"):
        print("Cancelled.")
        return 0

    vault.delete_record(args.name)
    print("✓ Record deleted.")
    return 0


def cmd_rename(vault: Vault, master: str, args: argparse.Namespace) -> int:
    if not vault.rename_record(args.name, args.new_name, master):
        raise RecordNotFound(f"No record named {args.name!r}")
    print(f"✓ Renamed '{args.name}' to '{args.new_name}'.")
    return 0


RECORD_COMMANDS = {
    'add': cmd_add,
    'update': cmd_update,
    'get': cmd_get,
    'list': cmd_list,
    'delete': cmd_delete,
    'rename': cmd_rename,
}


# =============================================================================
# Interactive menu
# =============================================================================

def print_menu(vault_path: str) -> None:
    print("\nPwdVault - Interactive Menu")
    print("=" * 40)
    print(f"Vault: {vault_path}")
    print("\n 1) Add record")
    print(" 2) Get record")
    print(" 3) Update record")
    print(" 4) List records")
    print(" 5) Delete record")
    print(" 6) Rename record")
    print(" 0) Exit")


def interactive(vault: Vault, master: str, vault_path: str) -> int:
    menu = {'1': 'add', '2': 'get', '3': 'update', '4': 'list', '5': 'delete', '6': 'rename'}
    while True:
        print_menu(vault_path)
        choice = input("\n> ").strip()
        if choice == '0':
            print("\nGoodbye!")
            return 0
        command = menu.get(choice)
        if command is None:
            continue

        args = argparse.Namespace(mode=None, length=None, no_symbols=False, copy=False, yes=False)
        if command != 'list':
            args.name = input("Record name: ").strip()
            if not args.name:
                continue
        if command == 'rename':
            args.new_name = input("New name: ").strip()

        try:
            RECORD_COMMANDS[command](vault, master, args)
        except (VaultError, ValueError) as e:
            print(f"ERROR: {e}")


# =============================================================================
# Entry point
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pwdvault", description="Local encrypted credential store")
    parser.add_argument("--db", default=config.DEFAULT_VAULT_PATH,
                        help=f"vault file (default: {config.DEFAULT_VAULT_PATH})")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.add_argument("-i", "--interactive", action="store_true", help="menu mode")

    sub = parser.add_subparsers(dest="command")
    sub.add_parser("init", help="set the master password")
    sub.add_parser("reset", help="reset the master password with the recovery phrase")
    sub.add_parser("list", help="list record names")

    for command in ("add", "update"):
        p = sub.add_parser(command, help=f"{command} a record")
        p.add_argument("name")
        mode = p.add_mutually_exclusive_group()
        mode.add_argument("--generate", dest="mode", action="store_const", const="generate",
                          help="generate the password")
        mode.add_argument("--manual", dest="mode", action="store_const", const="manual",
                          help="type the password")
        mode.add_argument("--no-secret", dest="mode", action="store_const", const="none",
                          help="don't store a password")
        p.add_argument("--length", type=int, default=None, help="generated password length")
        p.add_argument("--no-symbols", action="store_true", help="letters and digits only")

    p = sub.add_parser("get", help="show a record")
    p.add_argument("name")
    p.add_argument("--copy", action="store_true", help="copy the password instead of printing it")

    p = sub.add_parser("delete", help="delete a record")
    p.add_argument("name")
    p.add_argument("-y", "--yes", action="store_true", help="don't ask for confirmation")

    p = sub.add_parser("rename", help="rename a record")
    p.add_argument("name")
    p.add_argument("new_name")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    config.configure_logging(args.verbose)

    if not args.command and not args.interactive:
        parser.print_help()
        return 1

    config.ensure_vault_dir(args.db)
    try:
        with Vault(args.db) as vault:
            auth = MasterAuthenticator(vault)

            if auth.state is MasterState.UNINITIALIZED:
                return cmd_init(auth)
            if args.command == "init":
                print("A master password is already set. Use 'reset' to change it.")
                return 1
            if args.command == "reset":
                return cmd_reset(auth)

            try:
                master = login(auth)
            except AuthenticationFailure:
                print("Incorrect password. Exiting...")
                return 1

            if args.interactive:
                return interactive(vault, master, args.db)
            return RECORD_COMMANDS[args.command](vault, master, args)
    except (VaultError, ValueError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"ERROR: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nExiting...")
        return 1


if __name__ == "__main__":
    sys.exit(main())
