"""Backend for the English learning app: vocabulary, speech practice and tutor chat."""
