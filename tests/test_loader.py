import pytest
import requests

from familynet.http import HTTPClient, HTTPError
from familynet.loader import DataLoadError, load_dataset, parse_edges, parse_people
from familynet.schemas import EdgeType, MarriageStatus, Sex
from familynet.utils import coerce_int

NODES_CSV = """Node,Name,BirthYear,Sex,Marriage,MarriageAge,MarriageYear,NumKids,HavingKidsAge,HavingKidsYear,FamilyIndicator
P1,John Smith,1950,Male,oppositeSexMarried,25,1975,2,28,1978,Family
P2,Mary Smith,1952.0,Female,oppositesexmarried,23,1975,2,26,1978,Family
C1,,n/a,,Single,,,,,,
"""

LINKS_CSV = """Source,Target,Types
P1,P2,Marriage link
P1,C1,Parent link
P2,C1,parentChild
P1,C1,Sibling link
,C1,Parent link
"""


class DummyHTTP(HTTPClient):
    def __init__(self, pages):
        self.pages = pages
        self.calls = []

    def get_text(self, url, params=None, headers=None):
        self.calls.append(url)
        if url not in self.pages:
            raise HTTPError(f"Request failed with status 404: {url}")
        return self.pages[url]


def write_csvs(tmp_path):
    nodes = tmp_path / "nodes.csv"
    links = tmp_path / "links.csv"
    nodes.write_text(NODES_CSV, encoding="utf-8")
    links.write_text(LINKS_CSV, encoding="utf-8")
    return str(nodes), str(links)


def test_coerce_int_takes_leading_integer():
    assert coerce_int("1975") == 1975
    assert coerce_int(" 12.7") == 12
    assert coerce_int("n/a") == 0
    assert coerce_int("") == 0
    assert coerce_int(None) == 0
    assert coerce_int(3.9) == 3
    assert coerce_int(float("nan")) == 0


def test_load_dataset_from_files(tmp_path):
    nodes, links = write_csvs(tmp_path)
    dataset = load_dataset(nodes, links)

    assert [p.id for p in dataset.people] == ["P1", "P2", "C1"]
    john, mary, child = dataset.people
    assert john.sex is Sex.MALE
    assert john.birth_year == 1950
    assert mary.birth_year == 1952
    assert mary.marriage is MarriageStatus.OPPOSITE_SEX_MARRIED
    assert child.name == "C1"
    assert child.birth_year == 0
    assert child.sex is None
    assert child.num_kids == 0

    assert len(dataset.edges) == 3
    assert dataset.edges[2].type is EdgeType.PARENT_CHILD
    assert dataset.skipped_links == 2
    assert dataset.error is None
    assert not dataset.is_sample


def test_missing_file_raises(tmp_path):
    with pytest.raises(DataLoadError):
        load_dataset(str(tmp_path / "missing.csv"))


def test_missing_node_column_raises(tmp_path):
    path = tmp_path / "nodes.csv"
    path.write_text("Id,Name\nP1,John\n", encoding="utf-8")
    with pytest.raises(DataLoadError):
        load_dataset(str(path))


def test_fallback_to_sample_carries_error(tmp_path):
    dataset = load_dataset(str(tmp_path / "missing.csv"), fallback_to_sample=True)
    assert dataset.is_sample
    assert len(dataset.people) == 5
    assert dataset.edges == []
    assert "missing.csv" in dataset.error


def test_load_dataset_from_urls():
    http = DummyHTTP(
        {
            "https://example.com/nodes.csv": NODES_CSV,
            "https://example.com/links.csv": LINKS_CSV,
        }
    )
    dataset = load_dataset("https://example.com/nodes.csv", "https://example.com/links.csv", http=http)
    assert len(dataset.people) == 3
    assert http.calls == ["https://example.com/nodes.csv", "https://example.com/links.csv"]


def test_http_failure_becomes_load_error():
    http = DummyHTTP({})
    with pytest.raises(DataLoadError):
        load_dataset("https://example.com/nodes.csv", http=http)


def test_duplicate_ids_keep_first_row():
    people, skipped = parse_people(
        [{"Node": "P1", "Name": "First"}, {"Node": "P1", "Name": "Second"}, {"Node": ""}]
    )
    assert [p.name for p in people] == ["First"]
    assert skipped == 2


def test_parse_edges_counts_unusable_rows():
    edges, skipped = parse_edges(
        [
            {"Source": "A", "Target": "B", "Types": "Marriage link"},
            {"Source": "A", "Target": "B", "Types": "Friend"},
            {"Source": "A", "Target": "", "Types": "Parent link"},
        ]
    )
    assert len(edges) == 1
    assert skipped == 2


class FlakySession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = 0

    def request(self, method, url, **kwargs):
        self.calls += 1
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeResponse:
    def __init__(self, status_code, text=""):
        self.status_code = status_code
        self.text = text
        self.encoding = "utf-8"


def test_http_client_retries_then_succeeds(monkeypatch):
    monkeypatch.setattr("familynet.http.time.sleep", lambda _: None)
    session = FlakySession(
        [requests.ConnectionError("boom"), FakeResponse(503), FakeResponse(200, "Node\nP1\n")]
    )
    client = HTTPClient(session=session)
    assert client.get_text("https://example.com/nodes.csv") == "Node\nP1\n"
    assert session.calls == 3


def test_http_client_raises_on_client_error(monkeypatch):
    monkeypatch.setattr("familynet.http.time.sleep", lambda _: None)
    client = HTTPClient(session=FlakySession([FakeResponse(404, "not found")]))
    with pytest.raises(HTTPError):
        client.get_text("https://example.com/nodes.csv")


def test_undecodable_bytes_are_replaced(tmp_path):
    path = tmp_path / "nodes.csv"
    path.write_bytes(b"Node,Name\nP1,Jos\xe9\n")
    dataset = load_dataset(str(path), fallback_to_sample=True)
    assert not dataset.is_sample
    assert dataset.people[0].name == "Jos\ufffd"


def test_unreadable_path_raises_load_error(tmp_path):
    with pytest.raises(DataLoadError):
        load_dataset(str(tmp_path))


def test_unreadable_path_falls_back_to_sample(tmp_path):
    dataset = load_dataset(str(tmp_path), fallback_to_sample=True)
    assert dataset.is_sample
    assert dataset.error.startswith("Failed to read")


def test_unreadable_links_file_falls_back_to_sample(tmp_path, monkeypatch):
    nodes, links = write_csvs(tmp_path)
    real_open = open

    def guarded_open(path, *args, **kwargs):
        if str(path) == links:
            raise PermissionError(13, "Permission denied", path)
        return real_open(path, *args, **kwargs)

    monkeypatch.setattr("familynet.loader.open", guarded_open, raising=False)
    dataset = load_dataset(nodes, links, fallback_to_sample=True)
    assert dataset.is_sample
    assert "Permission denied" in dataset.error
