"""FastRepo 테스트 헬퍼 (Fake 레포지터리, Fake UoW)."""
