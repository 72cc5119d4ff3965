# tests/test_smoke.py
"""
Teste de sanidade estrutural (smoke test) do streamed-zip.

Garante apenas que o pacote é importável e expõe a API pública.
Não valida comportamento de build.
"""


def test_smoke():
    import streamed_zip

    assert streamed_zip.__version__
    assert callable(streamed_zip.build_zip)
    assert hasattr(streamed_zip.StreamedZipArchive, "build_archive")
