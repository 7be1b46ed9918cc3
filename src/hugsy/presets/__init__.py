"""ビルトインプリセット（"@hugsy/<name>" で参照される JSON ドキュメント）。"""
