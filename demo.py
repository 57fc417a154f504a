#!/usr/bin/env python3
"""
DB3 Demo - Shows the mutation pipeline end to end.

This demo runs against the in-memory storage node, so it needs no
running DB3 node.
"""

import asyncio
import logging

from db3_sdk import (
    Db3Client,
    Index,
    IndexType,
    InMemoryStorageNode,
    InMemoryTransport,
    MutationRejectedError,
    create_random_account,
)


async def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    print("=" * 60)
    print("DB3 Demo - Signed mutations")
    print("=" * 60)

    node = InMemoryStorageNode()
    account = create_random_account()
    print(f"\n[Setup] Account: {account.address}")

    async with Db3Client(account=account, transport=InMemoryTransport(node, account)) as client:
        print(f"[Setup] Synced nonce: {client.nonce}")

        print("\n[Step 1] Creating database...")
        mutation_id, db_addr = await client.create_database("todomvc")
        print(f"  mutation {mutation_id[:18]}... -> database {db_addr}")

        print("\n[Step 2] Creating collection 'todos'...")
        await client.create_collection(db_addr, "todos", [Index("/done", IndexType.STRING_KEY)])

        print("\n[Step 3] Adding documents...")
        for text in ("buy milk", "walk dog", "write docs"):
            await client.create_document(db_addr, "todos", {"text": text, "done": False})
        todos = node.list_documents(db_addr, "todos")
        for doc_id, doc in todos.items():
            print(f"  {doc_id}: {doc}")

        first_id = next(iter(todos))
        print(f"\n[Step 4] Marking {first_id} done (mask: ['done'])...")
        await client.update_document(db_addr, "todos", {"done": True}, first_id, ["done"])
        print(f"  {first_id}: {node.get_document(db_addr, 'todos', first_id)}")

        print(f"\n[Step 5] Deleting {first_id}...")
        await client.delete_document(db_addr, "todos", [first_id])
        print(f"  remaining: {sorted(node.list_documents(db_addr, 'todos'))}")

        print("\n[Step 6] Adding a duplicate collection (rejected)...")
        try:
            await client.create_collection(db_addr, "todos")
        except MutationRejectedError as e:
            print(f"  rejected: {e.message} (nonce still {client.nonce})")

    print("\n" + "=" * 60)
    print("Demo Complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
