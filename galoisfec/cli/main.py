"""CLI entry point for galoisfec.

Commands:
    galoisfec encode     Add Reed-Solomon parity to a file
    galoisfec decode     Correct and strip parity from an encoded file
    galoisfec check      Verify an encoded file without decoding it
    galoisfec field      Show the parameters and tables of a GF(2^p) field
    galoisfec benchmark  Measure encode/decode throughput
    galoisfec config     Show or save the effective configuration
"""

from __future__ import annotations

import logging
import time

import click
import numpy as np

from ..ecc.codec import ECCCodec
from ..fields.gf2p import GF2pField
from .config import DEFAULT_CONFIG_PATH, AppConfig, load_config, save_config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _make_codec(ctx: click.Context, ecc: int | None) -> ECCCodec:
    config: AppConfig = ctx.obj["config"]
    if ecc is not None:
        config.ecc_length = ecc
    level = "DEBUG" if ctx.obj.get("verbose") else config.log_level
    _setup_logging(level)
    try:
        return ECCCodec(config.to_ecc_config())
    except ValueError as e:
        raise click.UsageError(str(e)) from e


def _parse_positions(value: str | None) -> list[int] | None:
    if not value:
        return None
    try:
        return [int(p) for p in value.split(",") if p.strip()]
    except ValueError:
        raise click.BadParameter(f"expected comma-separated offsets, got {value!r}",
                                 param_hint="--erasures") from None


@click.group()
@click.option("--config", "-c", type=click.Path(), default=None,
              help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, default=False,
              help="Enable verbose/debug logging")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """galoisfec: Reed-Solomon error correction over GF(2^8)."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    try:
        ctx.obj["config"] = load_config(config)
    except ValueError as e:
        raise click.UsageError(str(e)) from e
    ctx.obj["verbose"] = verbose


@cli.command()
@click.argument("input", type=click.File("rb"), default="-")
@click.argument("output", type=click.File("wb"), default="-")
@click.option("--ecc", "-e", type=int, default=None,
              help="ECC symbols per block (default: from config)")
@click.pass_context
def encode(ctx: click.Context, input, output, ecc: int | None) -> None:
    """Add error correction codes to INPUT and write them to OUTPUT.

    Each block of the output holds the parity bytes followed by the data.
    """
    codec = _make_codec(ctx, ecc)
    data = input.read()
    encoded = codec.encode(data)
    logging.getLogger("galoisfec.encode").info(
        "Encoded %d bytes into %d bytes", len(data), len(encoded))
    output.write(encoded)


@cli.command()
@click.argument("input", type=click.File("rb"), default="-")
@click.argument("output", type=click.File("wb"), default="-")
@click.option("--ecc", "-e", type=int, default=None,
              help="ECC symbols per block (default: from config)")
@click.option("--erasures", type=str, default=None,
              help="Comma-separated byte offsets known to be corrupt")
@click.pass_context
def decode(ctx: click.Context, input, output, ecc: int | None,
           erasures: str | None) -> None:
    """Correct errors in INPUT and write the original data to OUTPUT.

    Exits with status 1 if the data cannot be corrected.
    """
    codec = _make_codec(ctx, ecc)
    positions = _parse_positions(erasures)
    data = input.read()
    try:
        decoded = codec.decode(data, positions)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--erasures") from e
    if decoded is None:
        click.echo("Error: data is uncorrectable", err=True)
        ctx.exit(1)
    logging.getLogger("galoisfec.decode").info(
        "Decoded %d bytes into %d bytes", len(data), len(decoded))
    output.write(decoded)


@cli.command()
@click.argument("input", type=click.File("rb"), default="-")
@click.option("--ecc", "-e", type=int, default=None,
              help="ECC symbols per block (default: from config)")
@click.pass_context
def check(ctx: click.Context, input, ecc: int | None) -> None:
    """Check that every block of INPUT is an uncorrupted codeword."""
    codec = _make_codec(ctx, ecc)
    if codec.check(input.read()):
        click.echo("OK")
    else:
        click.echo("CORRUPT")
        ctx.exit(1)


@cli.command()
@click.option("--power", "-p", type=int, default=8,
              help="Field size exponent (1 to 31)")
@click.option("--prime", type=int, default=0,
              help="Irreducible polynomial (default: standard for the power)")
@click.option("--generator", "-g", type=int, default=None,
              help="Generator of the multiplicative group (default: 2, or 1 for GF(2))")
@click.option("--table", "-t", is_flag=True, default=False,
              help="Print the exp/log tables (GF(2^8) and smaller)")
def field(power: int, prime: int, generator: int | None, table: bool) -> None:
    """Show the parameters of GF(2^POWER)."""
    try:
        if generator is None:
            generator = 1 if power == 1 else 2
        gf = GF2pField(power, prime, generator)
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    click.echo(f"GF(2^{gf.power})")
    click.echo(f"  Order: {gf.order}")
    click.echo(f"  Prime: {gf.prime} (0x{gf.prime:X}) = {gf.format_value(gf.prime ^ gf.order)} + x^{gf.power}")
    click.echo(f"  Generator: {gf.generator}")
    click.echo(f"  Lookup tables: {'yes' if gf.has_tables else 'no'}")

    if table:
        if not gf.has_tables:
            raise click.UsageError(f"GF(2^{gf.power}) has no lookup tables")
        click.echo("\n     n  exp(n)  log(n)")
        for n in range(gf.max_value + 1):
            exp = gf.exp(n) if n < gf.max_value else ""
            log = gf.log(n) if n else ""
            click.echo(f"  {n:4d}  {exp!s:>6}  {log!s:>6}")


@cli.command()
@click.option("--duration", "-d", type=float, default=5.0,
              help="Benchmark duration in seconds")
@click.option("--errors", "-n", type=int, default=None,
              help="Byte errors per block (default: ecc_length // 2)")
@click.option("--ecc", "-e", type=int, default=None,
              help="ECC symbols per block (default: from config)")
@click.option("--seed", type=int, default=None,
              help="Random seed for reproducible runs")
@click.pass_context
def benchmark(ctx: click.Context, duration: float, errors: int | None,
              ecc: int | None, seed: int | None) -> None:
    """Benchmark encode/decode throughput on randomly corrupted blocks."""
    codec = _make_codec(ctx, ecc)
    rs = codec.rs
    if errors is None:
        errors = rs.ecc_length // 2
    block_size = codec.config.block_size
    if not 0 <= errors <= block_size:
        raise click.BadParameter(f"must be from 0 to {block_size}", param_hint="--errors")

    rng = np.random.RandomState(seed)
    data = rng.randint(0, 256, codec.config.chunk_size, dtype=np.uint8).tobytes()

    click.echo(f"Benchmarking RS({block_size}, {codec.config.chunk_size}) "
               f"with {errors} error(s) per block for {duration:g} seconds...")

    blocks = 0
    failures = 0
    encode_time = 0.0
    decode_time = 0.0
    start_time = time.monotonic()

    while time.monotonic() - start_time < duration:
        t0 = time.perf_counter()
        encoded = bytearray(rs.encode(data))
        t1 = time.perf_counter()
        for pos in rng.choice(len(encoded), errors, replace=False):
            encoded[pos] ^= int(rng.randint(1, 256))
        t2 = time.perf_counter()
        decoded = rs.decode(encoded)
        t3 = time.perf_counter()
        encode_time += t1 - t0
        decode_time += t3 - t2
        blocks += 1
        if decoded != data:
            failures += 1

    total_bytes = blocks * len(data)
    click.echo("\nResults:")
    click.echo(f"  Blocks: {blocks}")
    click.echo(f"  Failures: {failures}")
    click.echo(f"  Total data: {total_bytes:,} bytes")
    if encode_time > 0:
        click.echo(f"  Encode: {total_bytes / encode_time:,.0f} bytes/s")
    if decode_time > 0:
        click.echo(f"  Decode: {total_bytes / decode_time:,.0f} bytes/s")


@cli.command("config")
@click.option("--save", "-s", is_flag=True, default=False,
              help="Write the effective configuration to the config file")
@click.pass_context
def show_config(ctx: click.Context, save: bool) -> None:
    """Show the effective configuration."""
    config: AppConfig = ctx.obj["config"]
    for name, value in config.as_dict().items():
        click.echo(f"{name} = {value!r}")
    if save:
        path = ctx.obj["config_path"] or DEFAULT_CONFIG_PATH
        save_config(config, path)
        click.echo(f"\nConfiguration saved to {path}")


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
