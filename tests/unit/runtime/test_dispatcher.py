"""Unit tests for VersionedCodec and bind_family."""

from __future__ import annotations

import pytest
from pydantic import BaseModel, ConfigDict

from stable_schema.runtime.binding import BindingError, VersionBinding, bind_family, build_dispatcher
from stable_schema.runtime.codecs import DecodeError, OfStringable, PydanticCodec
from stable_schema.runtime.dispatcher import VersionDecoder, VersionedCodec
from stable_schema.schemas.declarations import CodecRef, TypeDecl
from stable_schema.schemas.family import FamilyKind, SchemaFamily, SchemaVersion, VersionVariant


class AccountV1(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str


class AccountV2(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    balance: int


class AccountV3(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    balance: int
    currency: str


def v1_to_latest(v1: AccountV1) -> AccountV3:
    return AccountV3(name=v1.name, balance=0, currency="EUR")


def v2_to_latest(v2: AccountV2) -> AccountV3:
    return AccountV3(name=v2.name, balance=v2.balance, currency="EUR")


def _family(
    count: int,
    *,
    variant: VersionVariant = VersionVariant.PLAIN,
    kind: FamilyKind = FamilyKind.TYPE,
    adapter: str = "derived",
) -> SchemaFamily:
    type_names = ("query", "response") if kind is FamilyKind.RPC else ("t",)
    return SchemaFamily(
        name="Account",
        container_path=("Account", "Stable"),
        kind=kind,
        variant=variant,
        type_names=type_names,
        versions=tuple(
            SchemaVersion(
                number=n,
                module_path=("Account", "Stable", f"V{n}"),
                types=tuple(TypeDecl(name=name) for name in type_names),
                codec=CodecRef(adapter=adapter),
            )
            for n in range(1, count + 1)
        ),
    )


@pytest.fixture
def account_codec() -> VersionedCodec:
    return bind_family(
        _family(3),
        {
            1: VersionBinding(PydanticCodec(AccountV1), upgrade=v1_to_latest),
            2: VersionBinding(PydanticCodec(AccountV2), upgrade=v2_to_latest),
            3: VersionBinding(PydanticCodec(AccountV3)),
        },
    )


class TestVersionedCodec:
    """Tests for serialize / deserialize_opt."""

    @pytest.mark.requirement("RT-010")
    def test_round_trip_latest(self, account_codec: VersionedCodec) -> None:
        """deserialize_opt(serialize(v)) == v for Latest values."""
        value = AccountV3(name="alice", balance=10, currency="USD")
        assert account_codec.deserialize_opt(account_codec.serialize(value)) == value

    @pytest.mark.requirement("RT-010")
    def test_serialize_uses_latest_codec_without_tag(self, account_codec: VersionedCodec) -> None:
        """The buffer is exactly the Latest codec's output."""
        value = AccountV3(name="alice", balance=10, currency="USD")
        assert account_codec.serialize(value) == PydanticCodec(AccountV3).encode(value)

    @pytest.mark.requirement("RT-010")
    @pytest.mark.parametrize(
        ("old", "expected_version", "expected"),
        [
            (AccountV1(name="bob"), 1, AccountV3(name="bob", balance=0, currency="EUR")),
            (AccountV2(name="bob", balance=5), 2, AccountV3(name="bob", balance=5, currency="EUR")),
        ],
    )
    def test_old_buffers_are_upgraded(
        self,
        account_codec: VersionedCodec,
        old: BaseModel,
        expected_version: int,
        expected: AccountV3,
    ) -> None:
        """A buffer written by V<k> decodes to to_latest(value)."""
        buffer = PydanticCodec(type(old)).encode(old)

        assert account_codec.deserialize_with_version_opt(buffer) == (expected_version, expected)
        assert account_codec.deserialize_opt(buffer) == expected

    @pytest.mark.requirement("RT-010")
    @pytest.mark.parametrize("buffer", [b"", b"garbage", b'{"title": "x"}'])
    def test_unknown_buffers_give_none(self, account_codec: VersionedCodec, buffer: bytes) -> None:
        """Buffers no version accepts decode to None."""
        assert account_codec.deserialize_opt(buffer) is None
        assert account_codec.deserialize_with_version_opt(buffer) is None

    @pytest.mark.requirement("RT-011")
    def test_decode_order_newest_first(self, account_codec: VersionedCodec) -> None:
        assert account_codec.decode_order == (3, 2, 1)
        assert account_codec.latest == 3

    @pytest.mark.requirement("RT-011")
    def test_first_accepting_decoder_wins(self) -> None:
        """When two versions accept a buffer the earlier in order wins."""
        seen: list[int] = []

        def upgrade(value: int) -> int:
            seen.append(value)
            return value

        codec = VersionedCodec(
            "Counter",
            PydanticCodec(int),
            (
                VersionDecoder(2, PydanticCodec(int)),
                VersionDecoder(1, PydanticCodec(int), upgrade=upgrade),
            ),
        )
        assert codec.deserialize_with_version_opt(b"7") == (2, 7)
        assert seen == []

    @pytest.mark.requirement("RT-011")
    def test_upgrade_errors_propagate(self) -> None:
        """Only DecodeError means 'not this version'."""

        def broken(value: AccountV1) -> AccountV2:
            raise RuntimeError("upgrade bug")

        codec = VersionedCodec(
            "Account",
            PydanticCodec(AccountV2),
            (
                VersionDecoder(2, PydanticCodec(AccountV2)),
                VersionDecoder(1, PydanticCodec(AccountV1), upgrade=broken),
            ),
        )
        with pytest.raises(RuntimeError, match="upgrade bug"):
            codec.deserialize_opt(PydanticCodec(AccountV1).encode(AccountV1(name="x")))

    @pytest.mark.requirement("RT-011")
    def test_requires_decoders(self) -> None:
        with pytest.raises(ValueError, match="no decoders"):
            VersionedCodec("Account", PydanticCodec(AccountV1), ())


class TestBindFamily:
    """Tests for bind_family / build_dispatcher checks."""

    @pytest.mark.requirement("RT-012")
    def test_missing_version(self) -> None:
        with pytest.raises(BindingError, match=r"missing=\[2\]"):
            bind_family(_family(2), {1: VersionBinding(PydanticCodec(AccountV1))})

    @pytest.mark.requirement("RT-012")
    def test_extra_version(self) -> None:
        with pytest.raises(BindingError, match=r"extra=\[2\]"):
            bind_family(
                _family(1),
                {
                    1: VersionBinding(PydanticCodec(AccountV1)),
                    2: VersionBinding(PydanticCodec(AccountV2)),
                },
            )

    @pytest.mark.requirement("RT-012")
    def test_missing_upgrade(self) -> None:
        with pytest.raises(BindingError, match="V1 has no upgrade function to V2"):
            bind_family(
                _family(2),
                {
                    1: VersionBinding(PydanticCodec(AccountV1)),
                    2: VersionBinding(PydanticCodec(AccountV2)),
                },
            )

    @pytest.mark.requirement("RT-012")
    def test_latest_takes_no_upgrade(self) -> None:
        with pytest.raises(BindingError, match="V1 is Latest"):
            bind_family(_family(1), {1: VersionBinding(PydanticCodec(AccountV1), upgrade=lambda v: v)})

    @pytest.mark.requirement("RT-012")
    def test_binable_requires_declared_adapter(self) -> None:
        """A binable version must be bound to the adapter it declares."""
        family = _family(1, variant=VersionVariant.BINABLE, adapter="of_stringable")

        with pytest.raises(BindingError, match="declares codec 'of_stringable'"):
            bind_family(family, {1: VersionBinding(PydanticCodec(int))})

        codec = bind_family(family, {1: VersionBinding(OfStringable(str, int))})
        assert codec.deserialize_opt(codec.serialize(42)) == 42
        assert codec.deserialize_opt(b"forty-two") is None

    @pytest.mark.requirement("RT-012")
    def test_rpc_family_rejected(self) -> None:
        with pytest.raises(BindingError, match="bind_rpc"):
            bind_family(_family(1, kind=FamilyKind.RPC), {})

    @pytest.mark.requirement("RT-012")
    def test_build_dispatcher_names_type(self) -> None:
        """The type name is part of the dispatcher's subject."""
        codec = build_dispatcher(_family(1), {1: VersionBinding(PydanticCodec(AccountV1))}, "query")
        assert codec.family == "Account.query"

    @pytest.mark.requirement("RT-012")
    def test_decode_error_is_exported(self) -> None:
        """DecodeError carries the failing codec and reason."""
        error = DecodeError("PydanticCodec(AccountV1)", "1 validation error(s)")
        assert str(error) == "PydanticCodec(AccountV1): 1 validation error(s)"
