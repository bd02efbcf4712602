"""
Tests for the versioned artifact manifest and root style metadata.

Covers:
- RootManifest field mapping and optional-field defaults
- ArtifactManifestV1 create / to_dict / from_dict round trip
- Version dispatch gate (unknown, missing, non-integer versions)
- Runtime component decoding (object, null, legacy false)
- StyleAttributes / Palette encoding
"""

from __future__ import annotations

import json
import re

import pytest

from avail_artifact import (
    ArtifactManifestV1,
    ArtifactType,
    Color,
    Palette,
    RootManifest,
    RuntimeComponent,
    StyleAttributes,
    format_now,
    manifest_from_dict,
    manifest_from_json,
    serialize_manifest,
)
from avail_artifact.faults import ManifestFormatFault, UnknownManifestVersionFault


@pytest.fixture
def full_root():
    return RootManifest(
        name="avail",
        avail_module_extensions=[".avail"],
        entry_points=["Hello", "Goodbye"],
        description="standard library",
        digest_algorithm="SHA-256",
        templates={"fn": "function …"},
        stylesheet={
            "#keyword": StyleAttributes(foreground="keyword", bold=True),
            "#comment": StyleAttributes(font_family="Mono", italic=False),
        },
        palette=Palette(
            {"keyword": Color(0x12, 0x34, 0x56)},
            {"keyword": Color(0xAB, 0xCD, 0xEF, 0x80)},
        ),
    )


@pytest.fixture
def manifest(full_root):
    return ArtifactManifestV1.create(
        ArtifactType.APPLICATION,
        [full_root, RootManifest("extras")],
        description="demo",
        runtime_component=RuntimeComponent("jvm bits", {"org.Main": "entry"}),
    )


# ════════════════════════════════════════════════════════════════════════
# Timestamps
# ════════════════════════════════════════════════════════════════════════


class TestFormatNow:
    def test_canonical_shape(self):
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", format_now())

    def test_manifest_uses_canonical_timestamp(self, manifest):
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", manifest.constructed)


# ════════════════════════════════════════════════════════════════════════
# Serialization
# ════════════════════════════════════════════════════════════════════════


class TestManifestSerialization:
    def test_to_dict_fields(self, manifest):
        data = serialize_manifest(manifest)
        assert data["artifactVersion"] == 1
        assert data["artifactType"] == "APPLICATION"
        assert data["description"] == "demo"
        assert [r["name"] for r in data["roots"]] == ["avail", "extras"]
        assert data["jvmComponent"] == {"description": "jvm bits", "mains": {"org.Main": "entry"}}

    def test_root_record_fields(self, full_root):
        data = full_root.to_dict()
        assert data["availModuleExtensions"] == [".avail"]
        assert data["entryPoints"] == ["Hello", "Goodbye"]
        assert data["digestAlgorithm"] == "SHA-256"
        assert data["stylesheet"]["#keyword"] == {"foreground": "keyword", "bold": True}
        assert data["stylesheet"]["#comment"] == {"fontFamily": "Mono", "italic": False}
        assert data["palette"] == {"keyword": "#123456FF/ABCDEF80"}

    def test_round_trip(self, manifest):
        assert manifest_from_dict(serialize_manifest(manifest)) == manifest

    def test_json_round_trip(self, manifest):
        assert manifest_from_json(manifest.to_json()) == manifest

    def test_round_trip_without_runtime_component(self):
        m = ArtifactManifestV1.create("LIBRARY", {"r": RootManifest("r")})
        data = serialize_manifest(m)
        assert data["jvmComponent"] is None
        assert manifest_from_dict(data) == m

    def test_roots_keyed_by_name(self, manifest):
        assert manifest.roots["avail"].entry_points == ["Hello", "Goodbye"]

    def test_with_root(self):
        m = ArtifactManifestV1.create(ArtifactType.LIBRARY)
        m2 = m.with_root(RootManifest("new"))
        assert "new" in m2.roots and "new" not in m.roots


# ════════════════════════════════════════════════════════════════════════
# Decoding
# ════════════════════════════════════════════════════════════════════════


def _raw(**overrides):
    data = {
        "artifactVersion": 1,
        "artifactType": "LIBRARY",
        "constructed": "2024-01-01T00:00:00.000Z",
        "description": "",
        "roots": [
            {
                "name": "avail",
                "digestAlgorithm": "SHA-256",
                "availModuleExtensions": [".avail"],
                "entryPoints": [],
            }
        ],
    }
    data.update(overrides)
    return data


class TestManifestDecoding:
    def test_optional_root_fields_default_empty(self):
        root = manifest_from_dict(_raw()).roots["avail"]
        assert root.templates == {}
        assert root.stylesheet == {}
        assert root.palette is None
        assert root.description == ""

    def test_missing_jvm_component_is_absent(self):
        assert manifest_from_dict(_raw()).runtime_component is None

    def test_legacy_false_jvm_component_is_absent(self):
        assert manifest_from_dict(_raw(jvmComponent=False)).runtime_component is None

    def test_bad_jvm_component(self):
        with pytest.raises(ManifestFormatFault):
            manifest_from_dict(_raw(jvmComponent=[1, 2]))

    def test_missing_required_field(self):
        data = _raw()
        del data["constructed"]
        with pytest.raises(ManifestFormatFault) as info:
            manifest_from_dict(data)
        assert info.value.metadata["field"] == "constructed"

    def test_bad_artifact_type(self):
        with pytest.raises(ManifestFormatFault):
            manifest_from_dict(_raw(artifactType="PLUGIN"))

    def test_root_missing_extensions(self):
        data = _raw(roots=[{"name": "x", "digestAlgorithm": "SHA-256", "entryPoints": []}])
        with pytest.raises(ManifestFormatFault) as info:
            manifest_from_dict(data)
        assert "availModuleExtensions" in info.value.metadata["field"]

    def test_duplicate_root_names(self):
        root = _raw()["roots"][0]
        with pytest.raises(ManifestFormatFault):
            manifest_from_dict(_raw(roots=[root, dict(root)]))

    def test_invalid_json(self):
        with pytest.raises(ManifestFormatFault):
            manifest_from_json("{not json")

    def test_not_an_object(self):
        with pytest.raises(ManifestFormatFault):
            manifest_from_json("[1, 2, 3]")


# ════════════════════════════════════════════════════════════════════════
# Version gate
# ════════════════════════════════════════════════════════════════════════


class TestManifestVersionGate:
    @pytest.mark.parametrize("version", [0, 2, -1, 99])
    def test_unknown_versions(self, version):
        with pytest.raises(UnknownManifestVersionFault) as info:
            manifest_from_dict(_raw(artifactVersion=version))
        assert info.value.metadata["version"] == version
        assert info.value.metadata["known_versions"] == [1]
        assert "[1, 1]" in info.value.message

    @pytest.mark.parametrize("version", [None, "1", 1.0, True])
    def test_non_integer_versions(self, version):
        with pytest.raises(UnknownManifestVersionFault):
            manifest_from_dict(_raw(artifactVersion=version))

    def test_missing_version(self):
        data = _raw()
        del data["artifactVersion"]
        with pytest.raises(UnknownManifestVersionFault):
            manifest_from_dict(data)

    def test_written_by_json_dumps(self):
        text = json.dumps(_raw())
        assert manifest_from_json(text).artifact_version == 1


# ════════════════════════════════════════════════════════════════════════
# Styles
# ════════════════════════════════════════════════════════════════════════


class TestStyles:
    def test_style_attributes_omit_unset(self):
        assert StyleAttributes().to_dict() == {}
        assert StyleAttributes(underline=True, strikethrough=False).to_dict() == {
            "underline": True,
            "strikethrough": False,
        }

    def test_style_attributes_from_dict(self):
        attrs = StyleAttributes.from_dict({"fontFamily": "Mono", "subscript": True})
        assert attrs == StyleAttributes(font_family="Mono", subscript=True)

    def test_style_attributes_type_check(self):
        with pytest.raises(ManifestFormatFault):
            StyleAttributes.from_dict({"bold": "yes"}, rule="#x")

    def test_palette_single_colour_means_both_modes(self):
        palette = Palette.from_dict({"accent": "#112233"})
        assert palette.light_colors["accent"] == Color(0x11, 0x22, 0x33, 0xFF)
        assert palette.dark_colors["accent"] == palette.light_colors["accent"]

    def test_palette_light_and_dark(self):
        palette = Palette.from_dict({"accent": "#11223344/55667788"})
        assert palette.dark_colors["accent"] == Color(0x55, 0x66, 0x77, 0x88)
        assert palette.to_dict() == {"accent": "#11223344/55667788"}

    @pytest.mark.parametrize("value", ["112233", "#12345", "#GGHHII", 42])
    def test_palette_invalid(self, value):
        with pytest.raises(ManifestFormatFault):
            Palette.from_dict({"accent": value})
