# solmev

`solmev` checks whether a Solana transaction was the victim of an MEV attack.
Given a transaction signature it:

1. fetches the transaction from a Solana JSON-RPC node;
2. stops early if it is a plain transfer (only System or Memo program
   instructions), since such a transfer carries no swap risk;
3. fetches the whole block and takes up to four transactions on each side of
   the target;
4. looks for a Jito tip transfer among those neighbours, first before the
   target and then after it, and builds the bundle of up to five transactions
   around the tip;
5. runs sandwich-attack detection on the bundle (a DEX transaction just before
   and one just after the target whose shared writable accounts are at least
   70% alike) and, when no sandwich is found, front-running detection;
6. for a sandwich, prints an estimate of the user's loss and the attacker's
   profit in SOL.

The results are heuristic estimates and should be checked against the real
on-chain data.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Configuration

The command reads a TOML file, `config.toml` in the current directory unless
another path is given with `-c` / `--config`:

```toml
rpc_url = "https://rpc.example.com"
log_level = "info"

# Optional: signatures analysed automatically on start-up
auto_detect_hashes = []
```

`rpc_url` and `log_level` are required strings; `auto_detect_hashes` is a
list of strings and defaults to empty. `log_level` accepts `trace`, `debug`,
`info`, `warn`, `warning`, `error` or `off`; any other value logs errors only.
A missing or malformed file makes the command print an error and exit with
status 1.

## Usage

```
solmev
solmev --config path/to/config.toml
```

Any signatures listed in `auto_detect_hashes` are analysed first. The program
then reads signatures from standard input one line at a time; an empty line is
ignored, and `exit` or `quit` (in any letter case) or the end of input ends the
session.

If fetching the surrounding block fails, try a different `rpc_url`: many
public endpoints do not serve full blocks.

## Library use

The pieces are usable on their own:

```python
import asyncio

from solmev.client import SolanaClient
from solmev.detector import MevDetector


async def check(signature: str) -> None:
    detector = MevDetector()
    async with SolanaClient("https://rpc.example.com", 30.0) as client:
        txs, target_index = await client.get_nearby_transactions(signature)
        tip = detector.check_jito_tip_in_nearby_transactions(txs, target_index)
        if tip is None:
            print("no Jito tip nearby")
            return
        sandwich = detector.detect_sandwich_attack(tip.bundle, signature)
        if sandwich is not None:
            print("sandwiched by", sandwich.front_tx, "and", sandwich.back_tx)


asyncio.run(check("<transaction signature>"))
```

- `solmev.client` – `SolanaClient`, an async JSON-RPC client
  (`get_transaction`, `get_full_block`, `get_nearby_transactions`), raising
  `RpcError` when a request fails or the node returns no usable result.
- `solmev.models` – `Transaction`, `TransactionData`, `Message`,
  `MessageHeader` and `Instruction`, with `transaction_from_json` and
  `transaction_data_from_json`; `Message.is_account_writable` applies the
  writable-account rule from the message header.
- `solmev.detector` – `MevDetector` with Jito tip lookup (returning a
  `JitoTip`), sandwich detection (`SandwichDetails`) and front-run detection
  (`FrontrunDetails`).
- `solmev.loss` – transfer amount decoding and the loss estimation methods
  (price impact, token balance, SOL balance, slippage), tried in that order by
  `calculate_sandwich_loss`, each producing a `UserLoss`.
- `solmev.base58` and `solmev.programs` – base58 coding and the known DEX
  program ids and Jito tip accounts.
- `solmev.cli` – the `solmev` command (`main`), with `load_settings`,
  `analyze_transaction` and `interactive_loop`.

## Limits

Detection looks only at transaction structure: program ids, account keys,
writable flags and System transfer amounts. It does not read token balances,
pool state or pre/post balances from the node, so loss and profit figures are
rough estimates, and MEV not carried out through a Jito bundle next to the
target is not reported.