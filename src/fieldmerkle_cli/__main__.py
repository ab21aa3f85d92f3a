from __future__ import annotations
import os
import json
import pathlib
from typing import List, Optional
import typer
from rich import print

from fieldmerkle_api.errors import MerkleError
from fieldmerkle_api.field import from_hex, to_hex
from fieldmerkle_api.hasher import HASHERS, Hasher, get_hasher
from fieldmerkle_api.merkle import MerkleTree
from fieldmerkle_api.settings import settings
from fieldmerkle_api.sth import ed25519_generate, make_signed_root
from fieldmerkle_sdk.verify import verify_proof, verify_sth

app = typer.Typer(add_completion=False, no_args_is_help=True)


def _hasher(name: str) -> Hasher:
    try:
        return get_hasher(name)
    except MerkleError as e:
        raise typer.BadParameter(str(e))


def _read_leaves(path: str, hasher: Hasher) -> List[int]:
    """One hex field element per line; blank lines and '#' comments are skipped."""
    values = []
    for n, line in enumerate(pathlib.Path(path).read_text().splitlines(), 1):
        line = line.split("#", 1)[0].strip()
        if not line:
            continue
        try:
            values.append(from_hex(line, hasher.field))
        except ValueError:
            raise typer.BadParameter(f"{path}:{n}: invalid hex value")
    return values


def _load_tree(
    leaves: Optional[str], levels: Optional[int], sets: List[str], hasher: Hasher
) -> MerkleTree:
    if (leaves is None) == (levels is None):
        raise typer.BadParameter("pass exactly one of --leaves or --levels")
    if levels is not None and levels > settings.max_levels:
        raise typer.BadParameter(f"--levels must be <= {settings.max_levels}")
    try:
        if leaves is not None:
            tree = MerkleTree.from_leaves(_read_leaves(leaves, hasher), hasher)
        else:
            tree = MerkleTree.with_levels(levels, hasher)
        for item in sets:
            idx, _, value = item.partition("=")
            tree.update(int(idx), from_hex(value, hasher.field))
    except (MerkleError, ValueError) as e:
        raise typer.BadParameter(str(e))
    return tree


@app.command()
def hashers():
    """List the registered hasher names."""
    for name in sorted(HASHERS):
        print(name)


@app.command()
def gen_keys(out_dir: str = typer.Option("./keys", help="Directory to write keypair")):
    os.makedirs(out_dir, exist_ok=True)
    sk, pk = ed25519_generate()
    (pathlib.Path(out_dir) / "ed25519_private.key").write_bytes(sk)
    (pathlib.Path(out_dir) / "ed25519_public.key").write_bytes(pk)
    print(f"[green]Wrote keys to {out_dir}[/green]")


@app.command()
def build(
    leaves: Optional[str] = typer.Option(None, help="File with one hex leaf per line"),
    levels: Optional[int] = typer.Option(None, help="Build an empty tree of 2**levels leaves"),
    set_: List[str] = typer.Option([], "--set", help="INDEX=HEX update applied after building"),
    hasher: str = typer.Option(settings.hasher, help="Hasher name"),
):
    """Build a tree and print its shape and root."""
    h = _hasher(hasher)
    tree = _load_tree(leaves, levels, set_, h)
    typer.echo(
        json.dumps(
            {
                "leafs": tree.leafs,
                "height": tree.height,
                "hasher": hasher,
                "root": to_hex([tree.root], h.field)[0],
            },
            indent=2,
        )
    )


@app.command()
def prove(
    index: int,
    leaves: Optional[str] = typer.Option(None, help="File with one hex leaf per line"),
    levels: Optional[int] = typer.Option(None, help="Build an empty tree of 2**levels leaves"),
    set_: List[str] = typer.Option([], "--set", help="INDEX=HEX update applied after building"),
    hasher: str = typer.Option(settings.hasher, help="Hasher name"),
    out: Optional[str] = typer.Option(None, help="Write the proof JSON here"),
):
    """Emit an inclusion proof for leaf INDEX."""
    h = _hasher(hasher)
    tree = _load_tree(leaves, levels, set_, h)
    try:
        proof = tree.prove(index)
    except MerkleError as e:
        raise typer.BadParameter(str(e))
    doc = proof.model_dump_json(indent=2)
    if out:
        pathlib.Path(out).write_text(doc)
        print(f"[green]Wrote proof to {out}[/green]")
    else:
        typer.echo(doc)


@app.command()
def verify(
    proof_path: str,
    root: str = typer.Option(..., help="Trusted root (hex)"),
    height: int = typer.Option(..., help="Trusted tree height"),
    hasher: str = typer.Option(settings.hasher, help="Hasher name"),
):
    """Verify a proof JSON file against a trusted root."""
    ok = verify_proof(pathlib.Path(proof_path).read_text(), root, height, _hasher(hasher))
    print({"valid": ok})
    if not ok:
        raise typer.Exit(code=1)


@app.command()
def sign_root(
    leaves: Optional[str] = typer.Option(None, help="File with one hex leaf per line"),
    levels: Optional[int] = typer.Option(None, help="Build an empty tree of 2**levels leaves"),
    set_: List[str] = typer.Option([], "--set", help="INDEX=HEX update applied after building"),
    hasher: str = typer.Option(settings.hasher, help="Hasher name"),
    key_dir: str = typer.Option("./keys", help="Directory holding the Ed25519 keypair"),
    out: str = typer.Option("sth.json", help="Output path"),
):
    """Build a tree and write a signed root head (STH)."""
    h = _hasher(hasher)
    tree = _load_tree(leaves, levels, set_, h)
    sk = (pathlib.Path(key_dir) / "ed25519_private.key").read_bytes()
    pk = (pathlib.Path(key_dir) / "ed25519_public.key").read_bytes()
    sth = make_signed_root(tree, hasher, sk, pk)
    pathlib.Path(out).write_text(sth.model_dump_json(indent=2))
    print(f"[green]Wrote STH to {out}[/green]")


@app.command("verify-sth")
def verify_sth_cmd(path: str):
    ok = verify_sth(json.loads(pathlib.Path(path).read_text()))
    print({"signature_valid": ok})
    if not ok:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
