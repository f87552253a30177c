import json
from pathlib import Path

import pytest

from rlsindex.rpc import Crate, Edition, decode_input_files, encode_input_files


def _crate(name="foo", src="src/lib.rs", edition=Edition.EDITION_2018):
    return Crate(name, None if src is None else Path(src), edition, (1, 2))


def test_crate_round_trip():
    crate = _crate()
    assert Crate.from_dict(crate.to_dict()) == crate
    assert Crate.from_dict(json.loads(json.dumps(crate.to_dict()))) == crate


def test_crate_without_src_path():
    crate = _crate(src=None)
    data = crate.to_dict()
    assert data["src_path"] is None
    assert Crate.from_dict(data).src_path is None


def test_edition_wire_names():
    assert _crate(edition=Edition.EDITION_2021).to_dict()["edition"] == "Edition2021"
    assert Edition("Edition2015") is Edition.EDITION_2015


def test_invalid_edition_rejected():
    data = _crate().to_dict()
    data["edition"] = "Edition1999"
    with pytest.raises(ValueError):
        Crate.from_dict(data)


def test_missing_field_rejected():
    data = _crate().to_dict()
    del data["name"]
    with pytest.raises(ValueError):
        Crate.from_dict(data)


def test_edition_ordering():
    order = (Edition.EDITION_2021, Edition.EDITION_2015, Edition.EDITION_2018)
    decoded = [Crate.from_dict(_crate(edition=e).to_dict()).edition for e in order]
    assert sorted(decoded) == [
        Edition.EDITION_2015,
        Edition.EDITION_2018,
        Edition.EDITION_2021,
    ]
    assert max(decoded) is Edition.EDITION_2021


def test_crates_hashable():
    assert len({_crate(), _crate(), _crate(name="bar")}) == 2


def test_input_files_round_trip():
    files = {
        Path("src/lib.rs"): {_crate(), _crate(name="bar")},
        Path("src/util.rs"): {_crate()},
    }
    encoded = encode_input_files(files)
    assert set(encoded) == {"src/lib.rs", "src/util.rs"}
    assert decode_input_files(json.loads(json.dumps(encoded))) == files


def test_decode_rejects_non_object():
    with pytest.raises(ValueError):
        decode_input_files(["src/lib.rs"])