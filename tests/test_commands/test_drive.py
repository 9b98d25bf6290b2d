"""CLI tests for ``compute drive`` and ``compute drive-action``."""

from __future__ import annotations

import json

import httpx

DRIVE = {
    "id": "506f78a4-e098-11e5-ad9f-000f53306ae1",
    "name": "data",
    "region": {"slug": "nyc1", "name": "New York 1"},
    "size_gigabytes": 100,
    "description": "db volume",
    "attached_to_droplet_id": None,
}


def test_list(make_app, cli_runner, fake_api) -> None:
    fake_api.add("GET", "v2/storage/drives", {"drives": [DRIVE], "links": {}})

    result = cli_runner.invoke(make_app(), ["compute", "drive", "list"])

    assert result.exit_code == 0, result.output
    lines = result.stdout.splitlines()
    assert lines[0] == "ID\tName\tSize\tRegion\tDescription\tDroplet ID"
    assert lines[1] == f"{DRIVE['id']}\tdata\t100 GiB\tnyc1\tdb volume\t"


def test_list_region_filter_and_format(make_app, cli_runner, fake_api) -> None:
    fake_api.add("GET", "v2/storage/drives", {"drives": [DRIVE]})

    result = cli_runner.invoke(
        make_app(),
        ["compute", "drive", "ls", "--region", "nyc1", "--format", "Name,Size", "--no-header"],
    )

    assert result.exit_code == 0, result.output
    assert result.stdout == "data\t100 GiB\n"
    assert fake_api.requests[0].url.params["region"] == "nyc1"


def test_list_follows_pages(make_app, cli_runner, fake_api) -> None:
    second = dict(DRIVE, id="vol-2", name="logs")

    def _pages(request):
        if request.url.params.get("page") == "2":
            return httpx.Response(200, json={"drives": [second]})
        next_link = "https://api.test/v2/storage/drives?page=2&per_page=200"
        return httpx.Response(200, json={"drives": [DRIVE], "links": {"pages": {"next": next_link}}})

    fake_api.add("GET", "v2/storage/drives", handler=_pages)

    result = cli_runner.invoke(
        make_app(), ["compute", "drive", "list", "--format", "Name", "--no-header"]
    )

    assert result.exit_code == 0, result.output
    assert result.stdout == "data\nlogs\n"


def test_create(make_app, cli_runner, fake_api) -> None:
    fake_api.add("POST", "v2/storage/drives", {"drive": DRIVE}, status=201)

    result = cli_runner.invoke(
        make_app(),
        ["-o", "json", "compute", "drive", "create", "data", "--region", "nyc1", "--desc", "db volume"],
    )

    assert result.exit_code == 0, result.output
    body = fake_api.body_of(fake_api.calls("POST", "v2/storage/drives")[0])
    assert body == {
        "name": "data",
        "region": "nyc1",
        "size_gigabytes": 100,
        "description": "db volume",
    }
    assert json.loads(result.stdout)[0]["id"] == DRIVE["id"]


def test_create_missing_flags_makes_no_request(make_app, cli_runner, fake_api) -> None:
    result = cli_runner.invoke(make_app(), ["compute", "drive", "create", "data"])

    assert result.exit_code == 2
    assert "--desc, --region" in result.output
    assert fake_api.requests == []


def test_create_requires_name(make_app, cli_runner, fake_api) -> None:
    result = cli_runner.invoke(
        make_app(), ["compute", "drive", "create", "--region", "nyc1", "--desc", "d"]
    )

    assert result.exit_code == 2
    assert "(drive.create) command is missing required arguments" in result.output
    assert fake_api.requests == []


def test_create_with_values_from_file(make_app, cli_runner, fake_api) -> None:
    fake_api.add("POST", "v2/storage/drives", {"drive": DRIVE}, status=201)
    app = make_app(
        file_values={"drive.create.region": "ams3", "drive.create.desc": "x", "drive.create.size": 10}
    )

    result = cli_runner.invoke(app, ["compute", "drive", "create", "data", "--size", "20"])

    assert result.exit_code == 0, result.output
    body = fake_api.body_of(fake_api.requests[0])
    assert body["region"] == "ams3"
    assert body["size_gigabytes"] == 20


def test_get(make_app, cli_runner, fake_api) -> None:
    fake_api.add("GET", f"v2/storage/drives/{DRIVE['id']}", {"drive": DRIVE})

    result = cli_runner.invoke(
        make_app(),
        ["compute", "drive", "get", "--drive-id", DRIVE["id"], "--region", "nyc1", "--format", "ID"],
    )

    assert result.exit_code == 0, result.output
    assert result.stdout == f"ID\n{DRIVE['id']}\n"


def test_get_requires_drive_id_and_region(make_app, cli_runner, fake_api) -> None:
    result = cli_runner.invoke(make_app(), ["compute", "drive", "get"])

    assert result.exit_code == 2
    assert "--drive-id, --region" in result.output
    assert fake_api.requests == []


def test_get_not_found(make_app, cli_runner, fake_api) -> None:
    result = cli_runner.invoke(
        make_app(), ["compute", "drive", "g", "--drive-id", "nope", "--region", "nyc1"]
    )
    assert result.exit_code == 4


def test_delete(make_app, cli_runner, fake_api) -> None:
    fake_api.add("DELETE", "v2/storage/drives/vol-1", status=204)

    result = cli_runner.invoke(make_app(), ["compute", "drive", "rm", "vol-1"])

    assert result.exit_code == 0, result.output
    assert "Deleted drive vol-1" in result.output
    assert len(fake_api.calls("DELETE", "v2/storage/drives/vol-1")) == 1


def test_attach(make_app, cli_runner, fake_api) -> None:
    fake_api.add("POST", "v2/storage/drives/attachments", {}, status=202)

    result = cli_runner.invoke(make_app(), ["compute", "drive-action", "attach", "vol-1", "42"])

    assert result.exit_code == 0, result.output
    assert "attached vol-1 to 42" in result.output
    body = fake_api.body_of(fake_api.requests[0])
    assert body == {"droplet_id": 42, "drive_id": "vol-1"}


def test_attach_with_one_argument_fails(make_app, cli_runner, fake_api) -> None:
    result = cli_runner.invoke(make_app(), ["compute", "drive-action", "attach", "vol-1"])

    assert result.exit_code == 2
    assert "(drive-action.attach) command is missing required arguments" in result.output
    assert fake_api.requests == []


def test_attach_rejects_bad_droplet_id(make_app, cli_runner, fake_api) -> None:
    result = cli_runner.invoke(make_app(), ["compute", "drive-action", "a", "vol-1", "web"])

    assert result.exit_code == 2
    assert "invalid droplet id 'web'" in result.output
    assert fake_api.requests == []


def test_detach(make_app, cli_runner, fake_api) -> None:
    fake_api.add("DELETE", "v2/storage/drives/attachments", status=204)

    result = cli_runner.invoke(make_app(), ["compute", "drive-action", "detach", "vol-1"])

    assert result.exit_code == 0, result.output
    assert "detached vol-1" in result.output
    assert fake_api.body_of(fake_api.requests[0]) == {"drive_id": "vol-1"}


def test_api_error_is_reported(make_app, cli_runner, fake_api) -> None:
    fake_api.add(
        "DELETE",
        "v2/storage/drives/vol-1",
        {"id": "unprocessable_entity", "message": "drive is attached"},
        status=422,
    )

    result = cli_runner.invoke(make_app(), ["compute", "drive", "delete", "vol-1"])

    assert result.exit_code == 5
    assert "drive is attached" in result.output
