from __future__ import annotations

import asyncio
import os
import time

import httpx
from rich import print

from scripts.seed import seed
from taskdesk.client.api import TaskdeskClient

BASE = os.getenv("API_BASE_URL", "http://127.0.0.1:8000")

async def wait_ready(timeout_s: float = 30.0) -> None:
    deadline = time.time() + timeout_s
    last_err: Exception | None = None

    async with httpx.AsyncClient(base_url=BASE, timeout=5) as http:
        while time.time() < deadline:
            try:
                r = await http.get("/ready")
                if r.status_code == 200:
                    return
            except httpx.HTTPError as e:
                last_err = e
            await asyncio.sleep(0.5)

    if last_err:
        raise RuntimeError(f"api not ready after {timeout_s}s (last error: {last_err})")
    raise RuntimeError(f"api not ready after {timeout_s}s")

async def login(email: str) -> TaskdeskClient:
    c = TaskdeskClient(BASE)
    c.on_logout(lambda exc: print(f"[yellow]{email} logged out:[/yellow] {exc}"))
    token = await c.request_link(email)
    if not token:
        raise RuntimeError("no magic token returned; run the api with APP_ENV=dev")
    await c.login(token)
    return c

def show(label: str, r: httpx.Response) -> None:
    colour = "green" if r.status_code < 400 else "red"
    detail = r.json().get("detail", "") if r.status_code >= 400 else ""
    print(f"[{colour}]{r.status_code}[/{colour}] {label} {detail}")

async def main() -> None:
    print("[bold]demo: login -> work task -> permission checks -> refresh -> logout[/bold]")

    await wait_ready()
    print("[green]ready ok[/green]")

    s = seed()
    dept = s.department

    owner = await login(s.owner_email)
    admin = await login(s.admin_email)
    viewer = await login(s.viewer_email)
    print("owner, admin and viewer authed")

    try:
        me = (await viewer.get("/auth/me")).json()
        r = await admin.post(
            "/tasks",
            json={"title": f"demo work {int(time.time())}", "category": "work", "assigned_to": me["id"]},
        )
        show("admin creates work task for viewer", r)
        r.raise_for_status()
        task_id = r.json()["id"]

        show("viewer edits assigned work task", await viewer.patch(f"/tasks/{task_id}", json={"status": "started"}))
        show("admin edits it", await admin.patch(f"/tasks/{task_id}", json={"status": "started"}))
        show("admin deletes it", await admin.delete(f"/tasks/{task_id}"))
        show("viewer reads department summary", await viewer.get(f"/departments/{dept}/summary"))
        show("admin reads department summary", await admin.get(f"/departments/{dept}/summary"))
        show("admin reads another department", await admin.get("/departments/elsewhere/tasks"))

        # force the single-flight path: three requests race one refresh
        admin.storage.access_expires_at = 0
        results = await asyncio.gather(*(admin.get("/tasks/mine") for _ in range(3)))
        print(f"refreshed once, {sum(r.status_code == 200 for r in results)}/3 requests ok")

        show("owner deletes it", await owner.delete(f"/tasks/{task_id}"))
    finally:
        for c in (owner, admin, viewer):
            await c.logout()
            await c.aclose()

    print("[bold green]demo complete[/bold green]")

if __name__ == "__main__":
    asyncio.run(main())
